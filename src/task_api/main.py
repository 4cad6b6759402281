from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .errors import StoreError, TaskNotFoundError, TaskValidationError
from .logger import setup_logger
from .repositories import TaskStore, create_store
from .routers import tasks as tasks_router
from .schemas import first_validation_error
from .service import TaskService
from .settings import Settings, get_settings

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "CRUD operations for tasks with filtering, sorting, and pagination.",
    },
]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, store: Optional[TaskStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; read from the environment when omitted.
        store: An already-open TaskStore. When omitted, the store named by
            settings is opened at startup and closed at shutdown. A store
            passed in stays owned by the caller and is not closed.

    Returns:
        The configured FastAPI instance.
    """
    settings = settings or get_settings()
    setup_logger(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = store is None
        active = create_store(settings) if owned else store
        app.state.task_service = TaskService(active)
        logger.info("Task API started with {} backend", settings.persistence_backend)
        try:
            yield
        finally:
            if owned:
                active.close()
            logger.info("Task API stopped")

    app = FastAPI(
        title="Task API",
        description="REST API for managing tasks with pluggable storage backends.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TaskValidationError)
    async def task_validation_handler(request: Request, exc: TaskValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Report malformed bodies and query parameters the same way as payload
        validation errors: 400 with the first offending field's message.
        """
        return _error(status.HTTP_400_BAD_REQUEST, first_validation_error(exc.errors()).message)

    @app.exception_handler(TaskNotFoundError)
    async def not_found_handler(request: Request, exc: TaskNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "Task not found")

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.opt(exception=exc).error("Store error on {} {}", request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(tasks_router.router, prefix=settings.api_prefix)
    return app


load_dotenv()
app = create_app()
