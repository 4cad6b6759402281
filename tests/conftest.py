import os
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("API_PREFIX", "/api")

from task_api.main import create_app  # noqa: E402
from task_api.repositories import InMemoryTaskStore  # noqa: E402
from task_api.settings import get_settings  # noqa: E402

TASKS_URL = "/api/tasks"


def parse_ts(value: str) -> datetime:
    # Pydantic renders UTC as a trailing 'Z', which fromisoformat() rejects before 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@pytest.fixture
def store():
    return InMemoryTaskStore()


@pytest.fixture
def client(store):
    app = create_app(get_settings(), store=store)
    with TestClient(app) as c:
        yield c
