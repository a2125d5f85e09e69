from __future__ import annotations

from typing import Callable, Dict, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from ..audit import AuditScope, AuditTrail, get_audit_trail
from ..exceptions import NothingToUpdate, StorageError
from ..logger import get_logger
from ..queries import ListQuery, build_update
from ..repositories import TodoRepository, get_repository
from ..schemas import (
    TodoCreate,
    TodoDeleteOut,
    TodoListOut,
    TodoOut,
    TodoPageOut,
    TodoUpdate,
    TodoUpdateOut,
)
from ..utils import pagination_envelope, parse_uuid

logger = get_logger(__name__)

router = APIRouter(tags=["todos"])


def _require_todo_id(scope: AuditScope, raw: Optional[str], missing_message: str = "Missing ID parameter") -> UUID:
    """Parse the `id` query parameter or abort with 400."""
    if not raw:
        scope.fail(status.HTTP_400_BAD_REQUEST, missing_message, "Missing ID in the request")
    todo_id = parse_uuid(raw)
    if todo_id is None:
        scope.fail(status.HTTP_400_BAD_REQUEST, "Invalid ID format", f"Invalid UUID format for ID: {raw!r}")
    scope.todo_id = todo_id
    return todo_id


# PUBLIC_INTERFACE
@router.get(
    "/todos",
    response_model=TodoListOut,
    summary="List Todos",
    description="List every todo that has not been deleted. Responds 404 when there are none.",
    responses={
        200: {"description": "Todos found"},
        404: {"description": "No todos found"},
        500: {"description": "Storage error"},
    },
)
def list_todos(repo: TodoRepository = Depends(get_repository)):
    """
    List all non-deleted todos without filtering or pagination.
    """
    try:
        items = repo.list_active()
    except StorageError as e:
        logger.error(f"Unable to fetch todos: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to fetch todos")

    if not items:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "status": "404 Not Found",
                "message": "No todos found",
                "total_todos": 0,
                "server_status": "OK",
            },
        )
    return TodoListOut(
        status="200 OK",
        todos=[TodoOut(**it) for it in items],  # type: ignore[arg-type]
        total_todos=len(items),
        server_status="OK",
    )


# PUBLIC_INTERFACE
@router.get(
    "/todoss",
    response_model=TodoPageOut,
    summary="Search Todos",
    description=(
        "List todos with optional filters, sorting and pagination.\n\n"
        "Query parameters:\n"
        "- page: 1-based page number (invalid or < 1 -> 1)\n"
        "- limit: page size (invalid or < 1 -> 10)\n"
        "- status: exact status match\n"
        "- due_date: exact due date match (YYYY-MM-DD)\n"
        "- sort_by: one of id, title, status, due_date, created_at (otherwise created_at)\n"
        "- sort_order: 'ASC' for ascending; anything else sorts descending\n\n"
        "Returns the page together with current_page, total_pages and total_todos."
    ),
    responses={
        200: {"description": "Page retrieved successfully"},
        500: {"description": "Storage error"},
    },
)
def search_todos(
    page: Optional[str] = Query(None, description="Page number, starting at 1"),
    limit: Optional[str] = Query(None, description="Maximum number of items per page"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    due_date: Optional[str] = Query(None, description="Filter by due date (YYYY-MM-DD)"),
    sort_by: Optional[str] = Query(None, description="Sort field"),
    sort_order: Optional[str] = Query(None, description="'ASC' or 'DESC'"),
    repo: TodoRepository = Depends(get_repository),
) -> TodoPageOut:
    """
    Filtered, sorted and paginated listing.
    """
    query = ListQuery.from_params(
        page=page,
        limit=limit,
        status=status_filter,
        due_date=due_date,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    try:
        items, total = repo.search(query)
    except StorageError as e:
        logger.error(f"Unable to fetch todos: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Unable to fetch todos: {e}",
        )

    envelope = pagination_envelope(
        items=[TodoOut(**it) for it in items],  # type: ignore[arg-type]
        total=total,
        query=query,
    )
    return TodoPageOut(**envelope)


# PUBLIC_INTERFACE
@router.get(
    "/todo",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single non-deleted Todo item by its `id` query parameter.",
    responses={
        200: {"description": "Todo found"},
        400: {"description": "Missing or malformed id"},
        404: {"description": "Todo not found"},
        500: {"description": "Storage error"},
    },
)
def get_todo(
    id: Optional[str] = Query(None, description="UUID of the todo"),
    repo: TodoRepository = Depends(get_repository),
    audit: AuditTrail = Depends(get_audit_trail),
) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    with audit.scope("fetch") as scope:
        todo_id = _require_todo_id(scope, id)
        try:
            item = repo.get(todo_id)
        except StorageError as e:
            scope.fail(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Failed to fetch todo: {e}", f"Error: {e}")
        if item is None:
            scope.fail(status.HTTP_404_NOT_FOUND, "Todo not found", "Todo with the given ID does not exist")
        scope.succeed("Todo fetched successfully", f"Todo: {item['title']}")
    return TodoOut(**item)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "/todo/create",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses={
        201: {"description": "Todo created successfully"},
        400: {"description": "Invalid request payload"},
        500: {"description": "Storage error"},
    },
)
def create_todo(
    payload: TodoCreate,
    repo: TodoRepository = Depends(get_repository),
    audit: AuditTrail = Depends(get_audit_trail),
) -> TodoOut:
    """
    Create a new Todo under a freshly generated UUID.
    """
    with audit.scope("create") as scope:
        todo_id = uuid4()
        scope.todo_id = todo_id
        logger.debug(f"Generated UUID for todo: {todo_id}")
        try:
            created = repo.create(todo_id, payload)
        except StorageError as e:
            scope.fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create todo", f"Error: {e}")
        scope.succeed("Todo created", "Creation of new todo item")
    return TodoOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/todo/update/",
    response_model=TodoUpdateOut,
    summary="Update Todo",
    description=(
        "Partially update a Todo item identified by the `id` query parameter. "
        "Only non-empty fields are written; empty strings and null are treated as "
        "not supplied, so fields cannot be cleared. Responds with the previous and "
        "the updated record."
    ),
    responses={
        200: {"description": "Todo updated"},
        400: {"description": "Missing id, invalid payload, or no fields to update"},
        404: {"description": "Todo not found"},
        500: {"description": "Storage error"},
    },
)
@router.put("/update-todo", response_model=TodoUpdateOut, include_in_schema=False)
def update_todo(
    payload: TodoUpdate,
    id: Optional[str] = Query(None, description="UUID of the todo"),
    repo: TodoRepository = Depends(get_repository),
    audit: AuditTrail = Depends(get_audit_trail),
) -> TodoUpdateOut:
    """
    Partial update of a Todo item.

    The pre-fetch and the UPDATE are separate statements; a concurrent delete
    between them is not detected.
    """
    with audit.scope("update") as scope:
        todo_id = _require_todo_id(scope, id, "Missing todo ID")
        try:
            spec = build_update(payload)
        except NothingToUpdate as e:
            scope.fail(status.HTTP_400_BAD_REQUEST, str(e))

        try:
            previous = repo.get(todo_id)
            if previous is None:
                scope.fail(status.HTTP_404_NOT_FOUND, "Todo not found", "Todo with the given ID does not exist")
            matched = repo.update(todo_id, spec)
            current = repo.get(todo_id, include_deleted=True)
        except StorageError as e:
            scope.fail(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Failed to update todo: {e}", f"Error: {e}")
        if not matched or current is None:
            scope.fail(status.HTTP_404_NOT_FOUND, "Todo not found", "Todo disappeared before the update")
        scope.succeed("Todo updated", f"Updated fields: {', '.join(spec.columns)}")

    return TodoUpdateOut(
        message="Todo updated successfully",
        previous=TodoOut(**previous),  # type: ignore[arg-type]
        todo=TodoOut(**current),  # type: ignore[arg-type]
    )


# PUBLIC_INTERFACE
@router.put(
    "/todo/delete/",
    response_model=TodoDeleteOut,
    summary="Delete Todo",
    description="Soft delete a Todo item identified by the `id` query parameter.",
    responses={
        200: {"description": "Todo deleted"},
        400: {"description": "Missing or malformed id"},
        404: {"description": "Todo not found or already deleted"},
        500: {"description": "Storage error"},
    },
)
def delete_todo(
    id: Optional[str] = Query(None, description="UUID of the todo"),
    repo: TodoRepository = Depends(get_repository),
    audit: AuditTrail = Depends(get_audit_trail),
) -> TodoDeleteOut:
    """
    Mark a Todo as deleted. Deleting an already deleted todo responds 404.
    """
    with audit.scope("delete") as scope:
        todo_id = _require_todo_id(scope, id)
        try:
            item = repo.get(todo_id)
        except StorageError as e:
            scope.fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error", f"Failed to fetch todo: {e}")
        if item is None:
            scope.fail(
                status.HTTP_404_NOT_FOUND,
                "Todo not found or already deleted",
                "Failed to delete todo: Already deleted or does not exist",
            )
        try:
            deleted = repo.soft_delete(todo_id)
        except StorageError as e:
            scope.fail(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Failed to delete todo",
                f"Error executing delete query: {e}",
            )
        if not deleted:
            scope.fail(
                status.HTTP_404_NOT_FOUND,
                "Todo not found or already deleted",
                "Failed to delete todo: Deleted by a concurrent request",
            )
        scope.succeed("Todo deleted", "Successfully marked todo as deleted")

    item["is_deleted"] = True
    return TodoDeleteOut(
        status="success",
        message="Todo deleted successfully",
        todo=TodoOut(**item),  # type: ignore[arg-type]
    )


# Endpoints whose request-validation failures are reported to the audit trail.
AUDITED_ENDPOINTS: Dict[Callable, str] = {
    create_todo: "create",
    get_todo: "fetch",
    update_todo: "update",
    delete_todo: "delete",
}
