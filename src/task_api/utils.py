from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence, Union


# PUBLIC_INTERFACE
def skip_for_page(page: int, limit: int) -> int:
    """Number of records preceding 1-based `page` at page size `limit`."""
    return (page - 1) * limit


# PUBLIC_INTERFACE
def total_pages(total: int, limit: int) -> int:
    """Number of pages needed to hold `total` records at page size `limit`."""
    return -(-total // limit)


# PUBLIC_INTERFACE
def pagination_envelope(
    items: Union[Sequence[Any], Iterable[Any]],
    total: int,
    page: int,
    limit: int,
) -> Dict[str, Any]:
    """
    Build the pagination envelope for the task list endpoint.

    Args:
        items: The list/iterable of tasks for the current page.
        total: Total number of tasks that match the filters (ignoring pagination).
        page: The 1-based page returned.
        limit: The page size used.

    Returns:
        Dict with keys: total_tasks, total_pages, current_page, tasks.
    """
    materialized: List[Any] = list(items) if not isinstance(items, list) else items
    return {
        "total_tasks": int(total),
        "total_pages": total_pages(int(total), limit),
        "current_page": int(page),
        "tasks": materialized,
    }
