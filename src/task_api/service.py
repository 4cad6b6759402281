from __future__ import annotations

from typing import Any, Dict, Optional

from loguru import logger

from .errors import TaskNotFoundError, TaskValidationError
from .repositories import TaskStore
from .schemas import TaskOut, TaskPage, validate_task_payload
from .utils import pagination_envelope, skip_for_page

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

# JSON field name -> store field name
_SORT_FIELDS: Dict[str, str] = {
    "id": "id",
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "dueDate": "due_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def _require_positive(name: str, value: int) -> int:
    if value < 1:
        raise TaskValidationError(name, f'"{name}" must be greater than or equal to 1')
    return value


# PUBLIC_INTERFACE
class TaskService:
    """
    Task operations on top of an injected TaskStore.

    Write operations validate the payload before touching the store. Missing
    records raise TaskNotFoundError; store failures propagate as StoreError.
    """

    def __init__(self, store: TaskStore) -> None:
        self.store = store

    def create(self, payload: Any) -> TaskOut:
        task = validate_task_payload(payload)
        created = self.store.create(task.to_document())
        logger.info("Created task {}", created["id"])
        return TaskOut(**created)

    def list(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> TaskPage:
        """
        Return one page of tasks.

        status and priority are exact-match filters, applied only when given.
        sort names a task field (as spelled in JSON) to order ascending by;
        unknown names leave the store's natural order.
        """
        page = _require_positive("page", page)
        limit = _require_positive("limit", limit)

        filters: Dict[str, str] = {}
        if status:
            filters["status"] = status
        if priority:
            filters["priority"] = priority
        sort_field = _SORT_FIELDS.get(sort) if sort else None

        total = self.store.count(filters)
        tasks = self.store.find(filters, sort_field, skip_for_page(page, limit), limit)
        logger.debug("Listed {} of {} tasks (page {}, limit {})", len(tasks), total, page, limit)
        envelope = pagination_envelope(
            items=[TaskOut(**t) for t in tasks],
            total=total,
            page=page,
            limit=limit,
        )
        return TaskPage(**envelope)

    def get(self, task_id: str) -> TaskOut:
        task = self.store.find_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return TaskOut(**task)

    def update(self, task_id: str, payload: Any) -> TaskOut:
        task = validate_task_payload(payload)
        updated = self.store.update_by_id(task_id, task.to_document(partial=True))
        if updated is None:
            raise TaskNotFoundError(task_id)
        logger.info("Updated task {}", task_id)
        return TaskOut(**updated)

    def delete(self, task_id: str) -> None:
        deleted = self.store.delete_by_id(task_id)
        if deleted is None:
            raise TaskNotFoundError(task_id)
        logger.info("Deleted task {}", task_id)
