from __future__ import annotations


class StorageError(Exception):
    """Raised when the database driver fails (connection, query, or row decoding)."""


class NothingToUpdate(ValueError):
    """Raised when a partial update carries no non-empty field."""

    def __init__(self) -> None:
        super().__init__("No fields to update")
