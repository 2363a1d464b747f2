# dependencies.py
from fastapi import Request

from store import TaskStore


def get_store(request: Request) -> TaskStore:
    """Returns the TaskStore opened by the application lifespan."""
    return request.app.state.store
