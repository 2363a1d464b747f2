# main.py
import logging
import signal
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND, HTTP_500_INTERNAL_SERVER_ERROR
)

from config import Settings, load_settings
from errors import NotFoundError, PersistenceError, ValidationError
from logging_setup import setup_logging
from routers import tasks
from store import TaskStore

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    # --- App Lifecycle (Lifespan) ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Opens the task store on startup; a corrupt tasks file aborts startup.
        On shutdown, waits for every pending write before letting the process exit.
        """
        logger.info("Application starting up, tasks file: %s", settings.tasks_file)
        app.state.drain_failed = False
        app.state.store = await TaskStore.open(settings.tasks_file)

        yield

        logger.info("Application shutting down, draining pending writes...")
        try:
            await app.state.store.close()
        except PersistenceError:
            logger.exception("Error finishing writes on shutdown")
            app.state.drain_failed = True
        else:
            logger.info("All pending writes committed.")

    # --- FastAPI App Initialization ---
    app = FastAPI(
        title="Tasks API",
        description="A small task list backed by a single JSON file.",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.drain_failed = False

    # --- Include API Routers ---
    app.include_router(tasks.router)

    # --- Error Responses ---
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=HTTP_400_BAD_REQUEST, content={"error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=HTTP_404_NOT_FOUND, content={"error": "not found"})

    @app.exception_handler(RequestValidationError)
    async def request_error_handler(request: Request, exc: RequestValidationError):
        # A task id that is not an integer cannot match any task.
        if any(tuple(error.get("loc", ()))[:1] == ("path",) for error in exc.errors()):
            return JSONResponse(status_code=HTTP_404_NOT_FOUND, content={"error": "not found"})
        return await request_validation_exception_handler(request, exc)

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "failed to persist tasks"}
        )

    return app


app = create_app()


def _exit_after_drain(signum, frame):
    sys.exit(1 if app.state.drain_failed else 0)


def run():
    settings = app.state.settings
    setup_logging(settings.log_level)
    # uvicorn handles SIGINT/SIGTERM itself and runs the lifespan shutdown; once it
    # hands the signal back, exit with the drain result instead of the default action.
    signal.signal(signal.SIGINT, _exit_after_drain)
    signal.signal(signal.SIGTERM, _exit_after_drain)
    uvicorn.run(app, host=settings.host, port=settings.port, lifespan="on")
    sys.exit(1 if app.state.drain_failed else 0)


# --- Main Entry Point ---
if __name__ == "__main__":
    run()
