# worker.py
import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from errors import PersistenceError
from storage import write_tasks

logger = logging.getLogger(__name__)

SnapshotProducer = Callable[[], List[Dict[str, Any]]]
Job = Tuple[SnapshotProducer, "asyncio.Future[None]"]


class DurableWriter:
    """
    Serializes every write to one backing file.

    Jobs go through a FIFO queue drained by a single background loop, so at
    most one write is in flight and commits happen in enqueue order. The
    snapshot is produced when the write runs, not when it was requested: jobs
    that are already waiting when the loop picks up work share one physical
    write, and the last write always reflects the latest in-memory state.

    A failed commit is logged and reported on the futures of the jobs it
    covered; the loop keeps running and later jobs are unaffected.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.commits = 0
        self.failed_commits = 0
        self.last_error: Optional[PersistenceError] = None
        self._queue: "asyncio.Queue[Job]" = asyncio.Queue()
        self._consumer: Optional["asyncio.Task[None]"] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def start(self):
        if not self.running:
            self._consumer = asyncio.create_task(self._run(), name=f"writer:{self.path.name}")

    def enqueue(self, snapshot_producer: SnapshotProducer) -> "asyncio.Future[None]":
        """
        Schedule a write of snapshot_producer() and return a future that
        resolves once a commit started after this call has finished.
        Cancelling the future only abandons the wait; the write still runs.
        """
        if not self.running:
            raise RuntimeError("writer is not running")
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((snapshot_producer, future))
        return future

    async def drain(self):
        """
        Wait until every enqueued job has been committed.
        Raises PersistenceError if the most recent commit failed, since the
        file is then behind memory.
        """
        await self._queue.join()
        if self.last_error is not None:
            raise PersistenceError(f"last write to {self.path} failed") from self.last_error

    async def stop(self):
        try:
            await self.drain()
        finally:
            if self._consumer is not None:
                self._consumer.cancel()
                await asyncio.gather(self._consumer, return_exceptions=True)
                self._consumer = None

    async def _run(self):
        logger.debug("Writer for %s started.", self.path)
        while True:
            jobs: List[Job] = [await self._queue.get()]
            while not self._queue.empty():
                jobs.append(self._queue.get_nowait())

            try:
                error = await self._commit(jobs[-1][0])
            except asyncio.CancelledError:
                for _, future in jobs:
                    future.cancel()
                raise
            finally:
                for _ in jobs:
                    self._queue.task_done()

            for _, future in jobs:
                # Abandoned waits leave a cancelled future behind.
                if future.done():
                    continue
                if error is None:
                    future.set_result(None)
                else:
                    future.set_exception(error)

    async def _commit(self, snapshot_producer: SnapshotProducer) -> Optional[PersistenceError]:
        try:
            snapshot = snapshot_producer()
            await asyncio.to_thread(write_tasks, self.path, snapshot)
        except Exception as e:
            self.failed_commits += 1
            self.last_error = PersistenceError(f"failed to write {self.path}: {e}")
            logger.exception("Write error for %s", self.path)
            return self.last_error

        self.commits += 1
        self.last_error = None
        logger.debug("Committed %d tasks to %s", len(snapshot), self.path)
        return None
