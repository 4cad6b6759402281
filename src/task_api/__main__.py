"""
Run the Task API with Uvicorn.

Usage:
    python -m task_api

HOST and PORT come from the environment (or a .env file in the working
directory).
"""
from __future__ import annotations

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from .settings import get_settings

_UVICORN_LEVELS = {"critical", "error", "warning", "info", "debug", "trace"}


def main() -> None:
    load_dotenv()
    settings = get_settings()
    from .main import app

    log_level = settings.log_level.lower()
    logger.info("Server running on {}:{}", settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=log_level if log_level in _UVICORN_LEVELS else "info",
    )


if __name__ == "__main__":
    main()
