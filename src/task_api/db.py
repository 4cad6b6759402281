from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generator, List, Mapping, Optional, Tuple

from .errors import StoreError
from .models import SORTABLE_FIELDS, WRITABLE_FIELDS, TaskEntity
from .repositories import Filters, TaskStore, bounded, utcnow


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    status: str = "status"
    priority: str = "priority"
    due_date: str = "due_date"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()

_DATETIME_COLS = {_COLS.due_date, _COLS.created_at, _COLS.updated_at}


def _to_db(column: str, value: Any) -> Any:
    if column in _DATETIME_COLS and isinstance(value, datetime):
        return value.isoformat()
    return value


def _row_id(task_id: str) -> Optional[int]:
    # SQLite ids are integers; anything else cannot name a row
    try:
        return int(task_id)
    except (TypeError, ValueError):
        return None


class SQLiteTaskStore(TaskStore):
    """
    Lightweight SQLite store implementing the TaskStore interface.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open task database: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NOT NULL DEFAULT '',
                    {_COLS.status} TEXT NOT NULL DEFAULT 'TODO',
                    {_COLS.priority} TEXT NULL,
                    {_COLS.due_date} TEXT NULL,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_status ON {_COLS.table}({_COLS.status})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_priority ON {_COLS.table}({_COLS.priority})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        def parse_dt(s: Optional[str]) -> Optional[datetime]:
            if s is None:
                return None
            return datetime.fromisoformat(s)

        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description] or "",
            "status": row[_COLS.status],
            "priority": row[_COLS.priority],
            "due_date": parse_dt(row[_COLS.due_date]),
            "created_at": parse_dt(row[_COLS.created_at]),  # type: ignore
            "updated_at": parse_dt(row[_COLS.updated_at]),  # type: ignore
        }

    def _where(self, filters: Filters) -> Tuple[str, List[Any]]:
        clauses = []
        params: List[Any] = []
        for column, value in filters.items():
            if column not in WRITABLE_FIELDS:
                raise StoreError(f"Cannot filter tasks on {column!r}")
            clauses.append(f"{column} = ?")
            params.append(_to_db(column, value))
        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where_sql, params

    def _select_one(self, conn: sqlite3.Connection, row_id: int) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (row_id,)).fetchone()

    def create(self, document: Mapping[str, Any]) -> TaskEntity:
        now = utcnow().isoformat()
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.title}, {_COLS.description}, {_COLS.status},
                    {_COLS.priority}, {_COLS.due_date}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    document["title"],
                    document.get("description", ""),
                    document.get("status", "TODO"),
                    document.get("priority"),
                    _to_db(_COLS.due_date, document.get("due_date")),
                    now,
                    now,
                ),
            )
            row = self._select_one(conn, cur.lastrowid)  # type: ignore[arg-type]
            assert row is not None
            return self._row_to_entity(row)

    def count(self, filters: Filters) -> int:
        where_sql, params = self._where(filters)
        with self._conn() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS cnt FROM {_COLS.table} {where_sql}", params).fetchone()
            return int(row["cnt"]) if row else 0

    def find(self, filters: Filters, sort: Optional[str], skip: int, limit: int) -> List[TaskEntity]:
        where_sql, params = self._where(filters)
        # Column names cannot be bound as parameters, hence the whitelist
        order_sql = f"ORDER BY {sort} ASC, {_COLS.id} ASC" if sort in SORTABLE_FIELDS else f"ORDER BY {_COLS.id} ASC"
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                {where_sql}
                {order_sql}
                LIMIT ? OFFSET ?
                """,
                [*params, bounded(limit), bounded(skip)],
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def find_by_id(self, task_id: str) -> Optional[TaskEntity]:
        row_id = _row_id(task_id)
        if row_id is None:
            return None
        with self._conn() as conn:
            row = self._select_one(conn, row_id)
            return self._row_to_entity(row) if row else None

    def update_by_id(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        row_id = _row_id(task_id)
        if row_id is None:
            return None
        columns = [c for c in WRITABLE_FIELDS if c in changes]
        assignments = [f"{c} = ?" for c in columns] + [f"{_COLS.updated_at} = ?"]
        params = [_to_db(c, changes[c]) for c in columns] + [utcnow().isoformat(), row_id]
        with self._conn() as conn:
            cur = conn.execute(
                f"UPDATE {_COLS.table} SET {', '.join(assignments)} WHERE {_COLS.id} = ?",
                params,
            )
            if cur.rowcount == 0:
                return None
            row = self._select_one(conn, row_id)
            assert row is not None
            return self._row_to_entity(row)

    def delete_by_id(self, task_id: str) -> Optional[TaskEntity]:
        row_id = _row_id(task_id)
        if row_id is None:
            return None
        with self._conn() as conn:
            row = self._select_one(conn, row_id)
            if row is None:
                return None
            conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (row_id,))
            return self._row_to_entity(row)
