"""
MongoDB task store using pymongo.

Documents keep the snake_case field names of TaskEntity; the ObjectId in
``_id`` is exposed to callers as its 24-character hex string.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Mapping, Optional

from bson import ObjectId
from loguru import logger
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .errors import StoreError
from .models import SORTABLE_FIELDS, WRITABLE_FIELDS, TaskEntity
from .repositories import Filters, TaskStore, bounded, utcnow

COLLECTION_NAME = "tasks"


def _mask(uri: str) -> str:
    if "://" not in uri or "@" not in uri:
        return uri
    scheme, rest = uri.split("://", 1)
    creds, tail = rest.split("@", 1)
    user = creds.split(":", 1)[0]
    return f"{scheme}://{user}:****@{tail}"


def _object_id(task_id: str) -> Optional[ObjectId]:
    # Ids that are not valid ObjectIds cannot name a document
    if not ObjectId.is_valid(task_id):
        return None
    return ObjectId(task_id)


def _to_entity(doc: Mapping[str, Any]) -> TaskEntity:
    return {
        "id": str(doc["_id"]),
        "title": doc["title"],
        "description": doc.get("description", ""),
        "status": doc.get("status", "TODO"),
        "priority": doc.get("priority"),
        "due_date": doc.get("due_date"),
        "created_at": doc["created_at"],
        "updated_at": doc["updated_at"],
    }


@contextmanager
def _wrap_errors(action: str) -> Generator[None, None, None]:
    try:
        yield
    except PyMongoError as exc:
        raise StoreError(f"MongoDB {action} failed: {exc}") from exc


class MongoTaskStore(TaskStore):
    """
    TaskStore backed by a MongoDB collection.

    Pass ``collection`` to use an existing collection (the store then does not
    own a client and close() is a no-op).
    """

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        database: str = "tasks",
        collection: Optional[Collection] = None,
    ) -> None:
        self._client: Optional[MongoClient] = None
        if collection is None:
            logger.info("Connecting to MongoDB: {}", _mask(uri))
            # The client connects lazily; failures surface on first operation
            self._client = MongoClient(uri, tz_aware=True, serverSelectionTimeoutMS=5000)
            collection = self._client[database][COLLECTION_NAME]
        self._collection = collection

    def _query(self, filters: Filters) -> Dict[str, Any]:
        return {k: v for k, v in filters.items() if k in WRITABLE_FIELDS}

    def create(self, document: Mapping[str, Any]) -> TaskEntity:
        now = utcnow()
        doc: Dict[str, Any] = {
            "title": document["title"],
            "description": document.get("description", ""),
            "status": document.get("status", "TODO"),
            "priority": document.get("priority"),
            "due_date": document.get("due_date"),
            "created_at": now,
            "updated_at": now,
        }
        with _wrap_errors("insert"):
            result = self._collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _to_entity(doc)

    def count(self, filters: Filters) -> int:
        with _wrap_errors("count"):
            return int(self._collection.count_documents(self._query(filters)))

    def find(self, filters: Filters, sort: Optional[str], skip: int, limit: int) -> List[TaskEntity]:
        with _wrap_errors("find"):
            cursor = self._collection.find(self._query(filters))
            if sort in SORTABLE_FIELDS:
                cursor = cursor.sort("_id" if sort == "id" else sort, ASCENDING)
            cursor = cursor.skip(bounded(skip)).limit(bounded(limit))
            return [_to_entity(doc) for doc in cursor]

    def find_by_id(self, task_id: str) -> Optional[TaskEntity]:
        oid = _object_id(task_id)
        if oid is None:
            return None
        with _wrap_errors("find"):
            doc = self._collection.find_one({"_id": oid})
        return _to_entity(doc) if doc else None

    def update_by_id(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        oid = _object_id(task_id)
        if oid is None:
            return None
        update = {k: changes[k] for k in WRITABLE_FIELDS if k in changes}
        update["updated_at"] = utcnow()
        with _wrap_errors("update"):
            doc = self._collection.find_one_and_update(
                {"_id": oid},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        return _to_entity(doc) if doc else None

    def delete_by_id(self, task_id: str) -> Optional[TaskEntity]:
        oid = _object_id(task_id)
        if oid is None:
            return None
        with _wrap_errors("delete"):
            doc = self._collection.find_one_and_delete({"_id": oid})
        return _to_entity(doc) if doc else None

    def close(self) -> None:
        if self._client is not None:
            logger.info("Closing MongoDB connection")
            self._client.close()
            self._client = None
