# routers/tasks.py
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends
from starlette.status import HTTP_201_CREATED

from dependencies import get_store
from models import Task
from store import TaskStore

# --- Router Setup ---
router = APIRouter(
    prefix="/tasks",
    tags=["Tasks"],
)

# --- Endpoints ---
# Domain errors (ValidationError, NotFoundError, PersistenceError) are turned
# into {"error": ...} responses by the handlers registered in main.py.

@router.get("", response_model=List[Task])
async def list_tasks(store: TaskStore = Depends(get_store)):
    """Get the list of all tasks, in insertion order."""
    return store.list()

@router.post("", response_model=Task, status_code=HTTP_201_CREATED)
async def create_task(payload: Dict[str, Any] = Body(default={}), store: TaskStore = Depends(get_store)):
    """Creates a task from {"text": ...} and returns it once it is on disk."""
    return await store.create(payload.get("text"))

@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: int, store: TaskStore = Depends(get_store)):
    return store.get(task_id)

@router.put("/{task_id}", response_model=Task)
async def update_task(task_id: int, payload: Dict[str, Any] = Body(default={}), store: TaskStore = Depends(get_store)):
    """Toggles `completed` and/or edits `text`; invalid fields are ignored."""
    return await store.update(task_id, completed=payload.get("completed"), text=payload.get("text"))

@router.delete("/{task_id}", response_model=Task)
async def delete_task(task_id: int, store: TaskStore = Depends(get_store)):
    """Deletes a task and returns the removed record."""
    return await store.delete(task_id)
