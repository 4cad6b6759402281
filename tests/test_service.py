import math

import pytest

from task_api.errors import TaskNotFoundError, TaskValidationError
from task_api.models import TaskStatus
from task_api.repositories import InMemoryTaskStore
from task_api.service import TaskService


class RecordingStore(InMemoryTaskStore):
    """In-memory store that remembers the arguments of every call."""

    def __init__(self) -> None:
        super().__init__()
        self.calls = []

    def create(self, document):
        self.calls.append(("create", dict(document)))
        return super().create(document)

    def count(self, filters):
        self.calls.append(("count", dict(filters)))
        return super().count(filters)

    def find(self, filters, sort, skip, limit):
        self.calls.append(("find", dict(filters), sort, skip, limit))
        return super().find(filters, sort, skip, limit)

    def update_by_id(self, task_id, changes):
        self.calls.append(("update_by_id", task_id, dict(changes)))
        return super().update_by_id(task_id, changes)


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def service(store):
    return TaskService(store)


def seed(service, count):
    for i in range(count):
        service.create({"title": f"Task {i}"})


class TestCreate:
    def test_defaults_applied(self, service, store):
        task = service.create({"title": "Buy milk"})
        assert task.status == TaskStatus.TODO
        assert task.description == ""
        assert task.priority is None
        assert store.calls == [
            (
                "create",
                {"title": "Buy milk", "description": "", "status": "TODO", "priority": None, "due_date": None},
            )
        ]

    def test_invalid_payload_never_reaches_store(self, service, store):
        with pytest.raises(TaskValidationError) as excinfo:
            service.create({"description": "no title"})
        assert excinfo.value.field == "title"
        assert store.calls == []


class TestList:
    @pytest.mark.parametrize(
        "total,page,limit",
        [(0, 1, 10), (1, 1, 10), (10, 1, 10), (11, 2, 10), (25, 3, 7), (5, 9, 1), (3, 1, 1000)],
    )
    def test_pagination_math(self, service, store, total, page, limit):
        seed(service, total)
        store.calls.clear()

        result = service.list(page=page, limit=limit)

        assert store.calls[0] == ("count", {})
        assert store.calls[1] == ("find", {}, None, (page - 1) * limit, limit)
        assert result.total_tasks == total
        assert result.total_pages == math.ceil(total / limit)
        assert result.current_page == page
        assert len(result.tasks) == max(0, min(limit, total - (page - 1) * limit))

    def test_page_count_is_exact_for_huge_limits(self, service):
        seed(service, 3)
        result = service.list(page=2**70, limit=2**70)
        assert result.total_pages == 1
        assert result.tasks == []

    def test_filter_contains_only_supplied_keys(self, service, store):
        service.list(status="COMPLETED")
        assert store.calls[0] == ("count", {"status": "COMPLETED"})

        store.calls.clear()
        service.list(status="", priority="HIGH")
        assert store.calls[0] == ("count", {"priority": "HIGH"})

    def test_sort_name_is_mapped_to_store_field(self, service, store):
        service.list(sort="dueDate")
        assert store.calls[1][2] == "due_date"

        store.calls.clear()
        service.list(sort="nonsense")
        assert store.calls[1][2] is None

    @pytest.mark.parametrize("page,limit,field", [(0, 10, "page"), (-1, 10, "page"), (1, 0, "limit")])
    def test_rejects_non_positive_page_and_limit(self, service, store, page, limit, field):
        with pytest.raises(TaskValidationError) as excinfo:
            service.list(page=page, limit=limit)
        assert excinfo.value.field == field
        assert store.calls == []


class TestGetUpdateDelete:
    def test_get_missing(self, service):
        with pytest.raises(TaskNotFoundError):
            service.get("missing")

    def test_update_sends_supplied_fields_and_status(self, service, store):
        created = service.create({"title": "Old", "priority": "HIGH"})
        store.calls.clear()

        updated = service.update(created.id, {"title": "New", "dueDate": "2031-05-04"})

        op, task_id, changes = store.calls[0]
        assert (op, task_id) == ("update_by_id", created.id)
        assert set(changes) == {"title", "due_date", "status"}
        assert changes["status"] == "TODO"
        assert updated.title == "New"
        assert updated.priority == "HIGH"
        assert updated.updated_at >= created.updated_at

    def test_update_missing(self, service):
        with pytest.raises(TaskNotFoundError):
            service.update("missing", {"title": "x"})

    def test_update_invalid_never_reaches_store(self, service, store):
        created = service.create({"title": "Old"})
        store.calls.clear()
        with pytest.raises(TaskValidationError):
            service.update(created.id, {"title": ""})
        assert store.calls == []

    def test_delete(self, service):
        created = service.create({"title": "Doomed"})
        assert service.delete(created.id) is None
        with pytest.raises(TaskNotFoundError):
            service.delete(created.id)
        with pytest.raises(TaskNotFoundError):
            service.get(created.id)
