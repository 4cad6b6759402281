from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from ..schemas import ErrorOut, TaskOut, TaskPage
from ..service import DEFAULT_LIMIT, DEFAULT_PAGE, TaskService

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)


def _task_body() -> Any:
    return Body(
        ...,
        description="Task fields: title (required), description, status, priority, dueDate",
        examples=[{"title": "Buy milk", "status": "TODO", "priority": "MEDIUM", "dueDate": "2025-02-01"}],
    )


def get_task_service(request: Request) -> TaskService:
    """
    Return the TaskService the application built at startup.
    """
    return request.app.state.task_service


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Validate the payload and create a new task.",
    responses={
        201: {"description": "Task created successfully"},
        400: {"model": ErrorOut, "description": "Validation error"},
        500: {"model": ErrorOut, "description": "Store error"},
    },
)
def create_task(payload: Any = _task_body(), service: TaskService = Depends(get_task_service)) -> TaskOut:
    return service.create(payload)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TaskPage,
    summary="List Tasks",
    description=(
        "List tasks with optional filters, sorting and pagination.\n\n"
        "Query parameters:\n"
        "- status: exact-match filter on status\n"
        "- priority: exact-match filter on priority\n"
        "- sort: task field to sort by, ascending (e.g. title, dueDate, createdAt)\n"
        "- page: 1-based page number (default 1)\n"
        "- limit: page size (default 10)\n\n"
        "Returns totalTasks, totalPages, currentPage and the tasks of the page."
    ),
    responses={
        200: {"description": "Page retrieved successfully"},
        400: {"model": ErrorOut, "description": "Invalid query parameters"},
    },
)
def list_tasks(
    status_: Optional[str] = Query(None, alias="status", description="Filter by status"),
    priority: Optional[str] = Query(None, description="Filter by priority"),
    sort: Optional[str] = Query(None, description="Field to sort by, ascending"),
    page: int = Query(DEFAULT_PAGE, description="1-based page number"),
    limit: int = Query(DEFAULT_LIMIT, description="Page size"),
    service: TaskService = Depends(get_task_service),
) -> TaskPage:
    return service.list(status=status_, priority=priority, sort=sort, page=page, limit=limit)


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task by id.",
    responses={
        200: {"description": "Task found"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def get_task(task_id: str, service: TaskService = Depends(get_task_service)) -> TaskOut:
    return service.get(task_id)


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description=(
        "Validate the full payload and apply it to an existing task. Fields not supplied keep "
        "their stored value, except status which defaults to TODO."
    ),
    responses={
        200: {"description": "Task updated"},
        400: {"model": ErrorOut, "description": "Validation error"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def update_task(
    task_id: str,
    payload: Any = _task_body(),
    service: TaskService = Depends(get_task_service),
) -> TaskOut:
    return service.update(task_id, payload)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete a task by id.",
    responses={
        204: {"description": "Task deleted"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def delete_task(task_id: str, service: TaskService = Depends(get_task_service)) -> None:
    """
    Delete a task. Returns 204 on success, 404 if not found.
    """
    service.delete(task_id)
    return None
