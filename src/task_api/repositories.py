from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from loguru import logger

from .models import WRITABLE_FIELDS, TaskEntity
from .settings import Settings, get_settings

# Equality constraints on task fields, e.g. {"status": "TODO"}
Filters = Mapping[str, Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Largest row count SQLite and BSON can bind (signed 64-bit)
MAX_WINDOW = 2**63 - 1


def bounded(value: int) -> int:
    """Clamp a skip or limit into 0..MAX_WINDOW."""
    return min(max(value, 0), MAX_WINDOW)


# PUBLIC_INTERFACE
class TaskStore(ABC):
    """
    Abstract persistence contract for task backends.

    Documents passed to create/update_by_id use the snake_case field names of
    TaskEntity. Stores assign id, created_at and updated_at themselves.
    Stores are context managers; leaving the block releases the connection.
    """

    @abstractmethod
    def create(self, document: Mapping[str, Any]) -> TaskEntity:
        """Persist a new task and return it with id and timestamps assigned."""

    @abstractmethod
    def count(self, filters: Filters) -> int:
        """Return the number of tasks matching every filter."""

    @abstractmethod
    def find(self, filters: Filters, sort: Optional[str], skip: int, limit: int) -> List[TaskEntity]:
        """
        Return tasks matching every filter, ordered ascending by `sort` (natural
        order when None), skipping `skip` records and returning at most `limit`.
        """

    @abstractmethod
    def find_by_id(self, task_id: str) -> Optional[TaskEntity]:
        """Return a task by id, or None if not found."""

    @abstractmethod
    def update_by_id(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        """Merge `changes` into a task, refresh updated_at and return the updated task, or None."""

    @abstractmethod
    def delete_by_id(self, task_id: str) -> Optional[TaskEntity]:
        """Delete a task and return it, or None if not found."""

    def close(self) -> None:
        """Release any connection held by the store."""

    def __enter__(self) -> "TaskStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _sort_key(field: str):
    # None sorts before any value, as document stores order missing fields first
    def key(t: TaskEntity):
        value = t.get(field)  # type: ignore[misc]
        return (value is not None, value if value is not None else "")

    return key


class InMemoryTaskStore(TaskStore):
    """
    Thread-safe in-memory store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}

    def _matches(self, task: TaskEntity, filters: Filters) -> bool:
        return all(task.get(k) == v for k, v in filters.items())  # type: ignore[misc]

    def create(self, document: Mapping[str, Any]) -> TaskEntity:
        now = utcnow()
        entity: TaskEntity = {
            "id": uuid4().hex,
            "title": document["title"],
            "description": document.get("description", ""),
            "status": document.get("status", "TODO"),
            "priority": document.get("priority"),
            "due_date": document.get("due_date"),
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()  # type: ignore[return-value]

    def count(self, filters: Filters) -> int:
        with self._lock:
            return sum(1 for t in self._items.values() if self._matches(t, filters))

    def find(self, filters: Filters, sort: Optional[str], skip: int, limit: int) -> List[TaskEntity]:
        with self._lock:
            items = [t for t in self._items.values() if self._matches(t, filters)]

        if sort:
            items = sorted(items, key=_sort_key(sort))

        start = bounded(skip)
        end = start + bounded(limit)
        # Return copies to avoid external mutation
        return [t.copy() for t in items[start:end]]  # type: ignore[misc]

    def find_by_id(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()  # type: ignore[return-value]

    def update_by_id(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None

            updated = existing.copy()
            for field in WRITABLE_FIELDS:
                if field in changes:
                    updated[field] = changes[field]  # type: ignore[literal-required]
            updated["updated_at"] = utcnow()

            self._items[task_id] = updated  # type: ignore[assignment]
            return updated.copy()  # type: ignore[return-value]

    def delete_by_id(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            return self._items.pop(task_id, None)


# PUBLIC_INTERFACE
def create_store(settings: Optional[Settings] = None) -> TaskStore:
    """
    Factory to return the configured store based on settings.
    - memory: InMemoryTaskStore
    - sqlite: SQLiteTaskStore (standard library sqlite3)
    - mongodb: MongoTaskStore (pymongo)
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskStore

        logger.info("Using SQLite task store at {}", settings.sqlite_db_path)
        return SQLiteTaskStore(settings.sqlite_db_path)
    if settings.persistence_backend == "mongodb":
        from .mongo import MongoTaskStore

        logger.info("Using MongoDB task store, database {}", settings.mongo_database)
        return MongoTaskStore(settings.mongo_uri, settings.mongo_database)
    logger.info("Using in-memory task store")
    return InMemoryTaskStore()
