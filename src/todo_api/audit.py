"""
Audit trail for todo actions.

Handlers wrap their body in `AuditTrail.scope(action)`. When the block exits,
exactly one entry is appended to the `logs` table describing the outcome:
success, an HTTPException raised through `AuditScope.fail`, or an unexpected
error. Writing the entry never affects the response: failures to append are
logged locally and dropped.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generator, NoReturn, Optional
from uuid import UUID

from fastapi import HTTPException, Request

from .db import Database
from .exceptions import StorageError
from .logger import get_logger
from .models import NIL_TODO_ID, LogEntry

logger = get_logger(__name__)

SUCCESS = "success"
FAILURE = "failure"


class AuditedHTTPException(HTTPException):
    """An HTTPException whose audit entry is written by `AuditTrail.scope`."""


@dataclass(frozen=True)
class AuditEvent:
    action: str
    outcome: str
    todo_id: UUID
    message: str
    detail: str


class AuditScope:
    """Mutable state a handler fills in while it runs."""

    def __init__(self, action: str) -> None:
        self.action = action
        self.todo_id: UUID = NIL_TODO_ID
        self.message = ""
        self.detail = ""

    def succeed(self, message: str, detail: str = "") -> None:
        self.message = message
        self.detail = detail

    def fail(self, status_code: int, message: str, detail: Optional[str] = None) -> NoReturn:
        """Abort the request with `status_code`; `detail` goes to the audit entry only."""
        self.message = message
        self.detail = detail or message
        raise AuditedHTTPException(status_code=status_code, detail=message)


# PUBLIC_INTERFACE
class AuditTrail:
    """
    Append-only writer for the `logs` table.

    When `enabled` is False, events are only written to the process log.
    """

    def __init__(self, db: Database, enabled: bool = True) -> None:
        self._db = db
        self._enabled = enabled

    def record(self, event: AuditEvent) -> None:
        logger.info(
            f"audit action={event.action} outcome={event.outcome} "
            f"todo_id={event.todo_id} message={event.message!r}"
        )
        if not self._enabled:
            return
        entry: LogEntry = {
            "action": event.action,
            "todo_id": event.todo_id,
            "message": event.message,
            "details": event.detail,
            "timestamp": datetime.now(timezone.utc),
        }
        try:
            self._db.execute(
                "INSERT INTO logs (action, todo_id, message, details, timestamp) VALUES (?, ?, ?, ?, ?)",
                (
                    entry["action"],
                    str(entry["todo_id"]),
                    entry["message"],
                    entry["details"],
                    entry["timestamp"].isoformat(),
                ),
            )
        except StorageError as e:
            logger.error(f"Failed to log action {event.action} for {event.todo_id}: {e}")

    def failure(self, action: str, todo_id: UUID, message: str, detail: str) -> None:
        self.record(AuditEvent(action, FAILURE, todo_id, message, detail))

    @contextmanager
    def scope(self, action: str) -> Generator[AuditScope, None, None]:
        s = AuditScope(action)
        try:
            yield s
        except HTTPException as exc:
            message = s.message or str(exc.detail)
            self.record(AuditEvent(action, FAILURE, s.todo_id, message, s.detail or message))
            raise
        except Exception as exc:
            self.record(AuditEvent(action, FAILURE, s.todo_id, "Unexpected error", f"Error: {exc}"))
            raise
        else:
            self.record(AuditEvent(action, SUCCESS, s.todo_id, s.message, s.detail))


# PUBLIC_INTERFACE
def get_audit_trail(request: Request) -> AuditTrail:
    """FastAPI dependency returning the application's audit trail."""
    return request.app.state.audit
