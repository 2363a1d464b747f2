import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


@pytest.fixture
def tasks_file(tmp_path):
    """
    Path of a tasks.json inside a per-test temporary directory.
    The file itself does not exist until a test (or the store) writes it.
    """
    return tmp_path / "tasks.json"


@pytest.fixture
def app(tasks_file):
    return create_app(Settings(tasks_file=tasks_file))


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan: the store is opened on enter
    # and drained on exit.
    with TestClient(app) as client:
        yield client
