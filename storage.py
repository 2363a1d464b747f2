# storage.py
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from errors import CorruptStateError
from models import Task

_TASK_LIST = TypeAdapter(List[Task])

# Mode for a newly created backing file; an existing file keeps its own.
DEFAULT_FILE_MODE = 0o644


def read_tasks(path: Path) -> Optional[List[Task]]:
    """
    Load the task list from the backing file.
    Returns None when the file does not exist and an empty list when it is
    empty; raises CorruptStateError when it exists but does not hold a JSON
    array of task records.
    """
    try:
        with open(path, 'rb') as f:
            raw = f.read()
    except FileNotFoundError:
        return None
    try:
        text = raw.decode('utf-8')
        if not text.strip():
            return []
        return _TASK_LIST.validate_json(text)
    except (UnicodeDecodeError, SchemaError) as e:
        raise CorruptStateError(path, str(e)) from e


def write_tasks(path: Path, tasks: List[Dict[str, Any]]):
    """
    Replace the backing file with the given snapshot.
    The data goes to a temporary file in the same directory first and is then
    renamed over the target, so readers see either the old or the new file.
    """
    path = Path(path)
    data = json.dumps(tasks, indent=2, ensure_ascii=False) + "\n"
    try:
        mode = path.stat().st_mode & 0o777
    except FileNotFoundError:
        mode = DEFAULT_FILE_MODE
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates the file as 0600.
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
