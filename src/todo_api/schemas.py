from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Shared type for incoming due_date which can be a date or a "YYYY-MM-DD" string
DueDateInput = Union[date, str]

DUE_DATE_FORMAT = "%Y-%m-%d"


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[date]:
    """
    Internal helper to normalize due_date input into a calendar date.
    - None and "" mean "no due date".
    - Strings must be exactly YYYY-MM-DD.
    - A datetime is truncated to its date; a date is returned as-is.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s == "" or s == "null":
            return None
        try:
            return datetime.strptime(s, DUE_DATE_FORMAT).date()
        except ValueError as e:
            raise ValueError("Invalid due_date format. Use a YYYY-MM-DD date string (e.g., '2025-01-31').") from e

    raise ValueError("Invalid type for due_date; expected a YYYY-MM-DD string or null.")


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item. Only the presence of a title is checked.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "open",
                "due_date": "2025-02-01",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item")
    description: str = Field(default="", description="Optional detailed description")
    status: str = Field(default="", description="Free-form status label, e.g. 'open' or 'done'")
    due_date: Optional[date] = Field(
        default=None,
        description="Due date as YYYY-MM-DD; empty string or null means no due date",
    )

    @field_validator("description", "status", mode="before")
    @classmethod
    def null_to_empty(cls, v: Optional[str]) -> str:
        """Treat an explicit null like an omitted text field."""
        return "" if v is None else v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        """Normalize due_date from str/date to date."""
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for partially updating an existing Todo item.

    Every field is optional. Empty strings and null are treated as "not supplied",
    so a field can be changed but never cleared through an update.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "status": "done",
                "due_date": "2025-02-02",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="New title")
    description: Optional[str] = Field(default=None, description="New description")
    status: Optional[str] = Field(default=None, description="New status label")
    due_date: Optional[date] = Field(default=None, description="New due date as YYYY-MM-DD")

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        """Normalize due_date from str/date to date."""
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "open",
                "due_date": "2025-02-01",
                "created_at": "2025-01-25T10:15:30.123456+00:00",
                "is_deleted": False,
            }
        }
    )

    id: UUID = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: str = Field(default="", description="Detailed description")
    status: str = Field(default="", description="Free-form status label")
    due_date: Optional[date] = Field(default=None, description="Due date as YYYY-MM-DD, or null")
    created_at: datetime = Field(..., description="Creation timestamp")
    is_deleted: bool = Field(default=False, description="Soft-delete flag")


class TodoListOut(BaseModel):
    """Response of the unfiltered listing endpoint."""

    status: str = Field(..., description="Human readable HTTP status, e.g. '200 OK'")
    todos: List[TodoOut] = Field(..., description="All non-deleted todos")
    total_todos: int = Field(..., description="Number of todos returned")
    server_status: str = Field(default="OK", description="Server health marker")


class TodoPageOut(BaseModel):
    """Response of the filtered, sorted and paginated listing endpoint."""

    status: int = Field(..., description="HTTP status code")
    todos: List[TodoOut] = Field(..., description="Todos on the requested page")
    current_page: int = Field(..., description="Effective page number (1-based)")
    total_pages: int = Field(..., description="ceil(total_todos / limit)")
    total_todos: int = Field(..., description="Number of todos matching the filters")


class TodoUpdateOut(BaseModel):
    """Response of the partial update endpoint."""

    message: str
    previous: TodoOut = Field(..., description="The record as it was before the update")
    todo: TodoOut = Field(..., description="The record after the update")


class TodoDeleteOut(BaseModel):
    """Response of the soft-delete endpoint."""

    status: str
    message: str
    todo: TodoOut = Field(..., description="The soft-deleted record")
