from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import Request

from .db import Database
from .exceptions import StorageError
from .models import TodoEntity
from .queries import (
    NOT_DELETED,
    SELECT_TODO,
    ListQuery,
    UpdateSpec,
    build_count_query,
    build_list_query,
)
from .schemas import TodoCreate


def _row_to_entity(row: Dict[str, Any]) -> TodoEntity:
    try:
        return {
            "id": UUID(str(row["id"])),
            "title": row["title"] or "",
            "description": row["description"] or "",
            "status": row["status"] or "",
            "due_date": date.fromisoformat(row["due_date"]) if row["due_date"] else None,
            "created_at": datetime.fromisoformat(row["created_at"]),
            "is_deleted": bool(row["is_deleted"]),
        }
    except (KeyError, TypeError, ValueError) as e:
        # A row that cannot be decoded is reported like any other storage failure.
        raise StorageError(f"Unable to read todo row: {e}") from e


# PUBLIC_INTERFACE
class TodoRepository:
    """
    Data access for the `todos` table. Every read path except
    `get(..., include_deleted=True)` skips soft-deleted rows.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, todo_id: UUID, data: TodoCreate) -> TodoEntity:
        """Insert a new row under the caller-generated `todo_id` and return it."""
        now = datetime.now(timezone.utc).isoformat()
        due = data.due_date.isoformat() if data.due_date else None
        self._db.execute(
            """
            INSERT INTO todos (id, title, description, status, due_date, created_at, is_deleted)
            VALUES (?, ?, ?, ?, ?, ?, 0)
            """,
            (str(todo_id), data.title, data.description, data.status, due, now),
        )
        created = self.get(todo_id)
        if created is None:
            raise StorageError(f"Inserted todo {todo_id} could not be read back")
        return created

    def get(self, todo_id: UUID, include_deleted: bool = False) -> Optional[TodoEntity]:
        sql = f"{SELECT_TODO} WHERE id = ?"
        if not include_deleted:
            sql += f" AND {NOT_DELETED}"
        row = self._db.fetch_one(sql, (str(todo_id),))
        return _row_to_entity(row) if row else None

    def list_active(self) -> List[TodoEntity]:
        rows = self._db.fetch_all(f"{SELECT_TODO} WHERE {NOT_DELETED}")
        return [_row_to_entity(r) for r in rows]

    def search(self, query: ListQuery) -> Tuple[List[TodoEntity], int]:
        """
        Return one page of non-deleted todos and the total count matching the
        same filters. Either query failing raises StorageError; nothing partial
        is returned.
        """
        sql, params = build_list_query(query)
        rows = self._db.fetch_all(sql, params)
        items = [_row_to_entity(r) for r in rows]

        count_sql, count_params = build_count_query(query)
        count_row = self._db.fetch_one(count_sql, count_params)
        total = int(count_row["cnt"]) if count_row else 0
        return items, total

    def update(self, todo_id: UUID, spec: UpdateSpec) -> bool:
        """Apply `spec` to the row with `todo_id`. Returns False if no row matched."""
        sql, params = spec.render(todo_id)
        return self._db.execute(sql, params) > 0

    def soft_delete(self, todo_id: UUID) -> bool:
        """Flag the row as deleted. Returns False if it is missing or already deleted."""
        sql = f"UPDATE todos SET is_deleted = 1 WHERE id = ? AND {NOT_DELETED}"
        return self._db.execute(sql, (str(todo_id),)) > 0


# PUBLIC_INTERFACE
def get_repository(request: Request) -> TodoRepository:
    """FastAPI dependency: a repository bound to the application's database handle."""
    return TodoRepository(request.app.state.database)
