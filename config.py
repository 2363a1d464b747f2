# config.py
"""
Settings read from the environment, with an optional .env file in the
working directory loaded first.

    TASKS_FILE       backing JSON file (default: tasks.json)
    TASKS_HOST       bind address for the API server (default: 0.0.0.0)
    TASKS_PORT       port for the API server (default: 5000)
    TASKS_LOG_LEVEL  root log level (default: INFO)
    TASKS_API_URL    base URL used by the command line client
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    tasks_file: Path = Path("tasks.json")
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"
    api_url: str = "http://localhost:5000"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %d", name, raw, default)
        return default


def load_settings() -> Settings:
    defaults = Settings()
    return Settings(
        tasks_file=Path(os.getenv("TASKS_FILE") or defaults.tasks_file),
        host=os.getenv("TASKS_HOST") or defaults.host,
        port=_env_int("TASKS_PORT", defaults.port),
        log_level=(os.getenv("TASKS_LOG_LEVEL") or defaults.log_level).upper(),
        api_url=(os.getenv("TASKS_API_URL") or defaults.api_url).rstrip("/"),
    )
