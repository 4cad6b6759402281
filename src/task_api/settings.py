from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

SUPPORTED_BACKENDS = {"memory", "sqlite", "mongodb"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default), 'sqlite' or 'mongodb'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - MONGO_URI: MongoDB connection string. Default 'mongodb://localhost:27017'
    - MONGO_DATABASE: MongoDB database name. Default 'tasks'
    - HOST / PORT: address the HTTP server listens on. Default 0.0.0.0:3000
    - API_PREFIX: prefix for the task routes. Default '/api'
    - LOG_LEVEL: loguru level name. Default 'INFO'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    """

    persistence_backend: str
    sqlite_db_path: str
    mongo_uri: str
    mongo_database: str
    host: str
    port: int
    api_prefix: str
    log_level: str
    cors_allow_origins: List[str]


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _normalize_prefix(prefix: str) -> str:
    p = prefix.strip().rstrip("/")
    if p and not p.startswith("/"):
        p = "/" + p
    return p


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in SUPPORTED_BACKENDS:
        backend = "memory"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        mongo_uri=_get_env("MONGO_URI", "mongodb://localhost:27017").strip(),
        mongo_database=_get_env("MONGO_DATABASE", "tasks").strip(),
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_int(_get_env("PORT", "3000"), 3000),
        api_prefix=_normalize_prefix(os.getenv("API_PREFIX", "/api")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
    )
