from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A storage-level representation of a Task record, shared by all store
    backends.

    Fields:
    - id: Opaque string identifier assigned by the store
    - title: Short title (1..100 chars, validated in schemas)
    - description: Free text, empty string when not provided
    - status: One of TaskStatus values
    - priority: One of TaskPriority values, or None
    - due_date: Optional due datetime
    - created_at: UTC creation timestamp
    - updated_at: UTC last update timestamp
    """

    id: str
    title: str
    description: str
    status: str
    priority: Optional[str]
    due_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


# Fields a client may write; everything else is owned by the store.
WRITABLE_FIELDS = ("title", "description", "status", "priority", "due_date")

# Fields a list query may be ordered by.
SORTABLE_FIELDS = ("id", *WRITABLE_FIELDS, "created_at", "updated_at")
