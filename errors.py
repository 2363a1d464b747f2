# errors.py


class TaskError(Exception):
    """Base class for every error raised by the task store."""


class ValidationError(TaskError):
    """Rejected input, e.g. a task text that is empty after trimming."""


class NotFoundError(TaskError):
    def __init__(self, task_id: int):
        super().__init__(f"task {task_id} not found")
        self.task_id = task_id


class PersistenceError(TaskError):
    """A commit of the snapshot to the backing file failed."""


class CorruptStateError(TaskError):
    """
    The backing file exists but cannot be parsed as a task list.
    This is fatal at startup: an unreadable file is never treated as empty.
    """

    def __init__(self, path, reason: str):
        super().__init__(f"{path} is not a valid task list: {reason}")
        self.path = path
