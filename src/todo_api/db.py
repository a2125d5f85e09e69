"""
SQLite access helpers (raw SQL).

`Database` owns the single connection shared by every request. The application
constructs it at startup, opens it in the lifespan hook (which also checks the
connection and bootstraps the tables) and closes it on shutdown. See
`todo_api.main`.

SQL parameter style: sqlite3 positional placeholders `?`.
"""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Sequence

from .exceptions import StorageError
from .logger import get_logger

logger = get_logger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS todos (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL DEFAULT '',
        description TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT '',
        due_date TEXT NULL,
        created_at TEXT NOT NULL,
        is_deleted INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_todos_is_deleted ON todos(is_deleted)",
    "CREATE INDEX IF NOT EXISTS idx_todos_created_at ON todos(created_at)",
    """
    CREATE TABLE IF NOT EXISTS logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        action TEXT NOT NULL,
        todo_id TEXT NOT NULL,
        message TEXT NOT NULL,
        details TEXT NOT NULL,
        timestamp TEXT NOT NULL
    )
    """,
)


class Database:
    """
    Shared storage handle.

    The connection runs in autocommit mode, so every statement is its own
    transaction. No locking is added on top of the sqlite3 driver.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._conn: Optional[sqlite3.Connection] = None

    def open(self) -> None:
        """Open the connection, verify it answers, and create missing tables."""
        if self._conn is not None:
            return None
        if self._path != ":memory:":
            os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        try:
            conn = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute("SELECT 1").fetchone()
            for statement in _SCHEMA:
                conn.execute(statement)
        except sqlite3.Error as e:
            logger.error(f"Failed to open database at {self._path}: {e}")
            raise StorageError(str(e)) from e
        self._conn = conn
        logger.info(f"Database connection established ({self._path})")

    def close(self) -> None:
        if self._conn is None:
            return None
        self._conn.close()
        self._conn = None
        logger.info("Database connection closed")

    def ping(self) -> bool:
        """Return True when the connection is open and answers a trivial query."""
        if self._conn is None:
            return False
        try:
            self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True

    @contextmanager
    def _cursor(self) -> Generator[sqlite3.Cursor, None, None]:
        if self._conn is None:
            raise StorageError("Database is not open. Call open() on startup.")
        try:
            cur = self._conn.cursor()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        try:
            yield cur
        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Query failed: {e}")
            raise StorageError(str(e)) from e
        finally:
            cur.close()

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """
        Run a query and return a single row as a dict (or None).
        """
        with self._cursor() as cur:
            row = cur.execute(sql, params).fetchone()
            return dict(row) if row is not None else None

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        with self._cursor() as cur:
            return [dict(r) for r in cur.execute(sql, params).fetchall()]

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """
        Run a statement (INSERT/UPDATE). Returns the number of affected rows.
        """
        with self._cursor() as cur:
            cur.execute(sql, params)
            return cur.rowcount
