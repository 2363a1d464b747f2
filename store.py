# store.py
import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from errors import CorruptStateError, NotFoundError, PersistenceError, ValidationError
from models import Task
from storage import read_tasks
from worker import DurableWriter

logger = logging.getLogger(__name__)


class TaskStore:
    """
    The authoritative, in-memory list of tasks.

    Reads never touch the disk. Every mutation is applied to memory first and
    then waits for the DurableWriter to commit a snapshot, so a successful
    return means the change is on disk. If that commit fails, the change is
    kept in memory and PersistenceError is raised to the caller.
    """

    def __init__(self, writer: DurableWriter, tasks: Optional[List[Task]] = None):
        self._writer = writer
        self._tasks: List[Task] = list(tasks or [])
        self._last_id = max((t.id for t in self._tasks), default=0)

    @classmethod
    async def open(cls, path: Path, writer: Optional[DurableWriter] = None) -> "TaskStore":
        """
        Load the store from the backing file and start its writer.
        A missing file starts an empty list and is created right away; an
        unreadable one raises CorruptStateError.
        """
        path = Path(path)
        loaded = await asyncio.to_thread(read_tasks, path)
        if loaded is not None:
            ids = [t.id for t in loaded]
            if len(ids) != len(set(ids)):
                raise CorruptStateError(path, "duplicate task ids")

        store = cls(writer or DurableWriter(path), loaded)
        store._writer.start()

        if loaded is None:
            logger.info("%s not found, starting with an empty task list.", path)
            try:
                await store._persist()
            except PersistenceError:
                logger.warning("Could not create %s; it will be written on the next change.", path)
        else:
            logger.info("Loaded %d tasks from %s", len(loaded), path)
        return store

    async def close(self):
        """Wait for pending writes and stop the writer."""
        await self._writer.stop()

    @property
    def writer(self) -> DurableWriter:
        return self._writer

    def snapshot(self) -> List[Dict[str, Any]]:
        return [t.model_dump() for t in self._tasks]

    def list(self) -> List[Task]:
        return list(self._tasks)

    def get(self, task_id: int) -> Task:
        return self._tasks[self._index(task_id)]

    async def create(self, text: Any) -> Task:
        if not isinstance(text, str):
            text = str(text) if text else ""
        text = _checked_text(text.strip())
        if not text:
            raise ValidationError("text is required")

        task = Task(id=self._next_id(), text=text)
        self._tasks.append(task)
        await self._persist()
        return task

    async def update(self, task_id: int, completed: Any = None, text: Any = None) -> Task:
        """
        Apply the valid fields of a patch. A non-bool `completed` or a `text`
        that is blank after trimming is ignored, not rejected; the write is
        scheduled even when nothing changed. Text that cannot be stored raises
        ValidationError before anything is applied.
        """
        task = self.get(task_id)
        if isinstance(text, str):
            text = _checked_text(text.strip())
        if isinstance(completed, bool):
            task.completed = completed
        if isinstance(text, str) and text:
            task.text = text
        await self._persist()
        return task

    async def delete(self, task_id: int) -> Task:
        task = self._tasks.pop(self._index(task_id))
        await self._persist()
        return task

    def _index(self, task_id: int) -> int:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        raise NotFoundError(task_id)

    def _next_id(self) -> int:
        # Millisecond timestamp, bumped past the last id so rapid creates never collide.
        self._last_id = max(time.time_ns() // 1_000_000, self._last_id + 1)
        return self._last_id

    async def _persist(self):
        await self._writer.enqueue(self.snapshot)


def _checked_text(text: str) -> str:
    # Lone surrogates survive JSON decoding but cannot be written as UTF-8.
    try:
        text.encode('utf-8')
    except UnicodeEncodeError as e:
        raise ValidationError("text is not valid unicode") from e
    return text
