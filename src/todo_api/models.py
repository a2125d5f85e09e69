from __future__ import annotations

from datetime import date, datetime
from typing import Optional, TypedDict
from uuid import UUID

# Identifier recorded in the audit log when no todo id is known yet.
NIL_TODO_ID = UUID(int=0)


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a row of the `todos` table.

    Fields:
    - id: UUID generated once at creation, never changed
    - title: Short title
    - description: Free text, empty string when not given
    - status: Free-form status label (no enumeration is enforced)
    - due_date: Optional calendar date
    - created_at: Server-assigned creation timestamp
    - is_deleted: Soft-delete flag; deleted rows stay in the table
    """

    id: UUID
    title: str
    description: str
    status: str
    due_date: Optional[date]
    created_at: datetime
    is_deleted: bool


# PUBLIC_INTERFACE
class LogEntry(TypedDict):
    """One append-only row of the `logs` audit table."""

    action: str
    todo_id: UUID
    message: str
    details: str
    timestamp: datetime
