"""
Parameterized SQL for listing and partially updating todos.

Queries are described by small value objects (`ListQuery`, `QuerySpec`,
`UpdateSpec`) and rendered into `(sql, params)` pairs. User input only ever
reaches the database as a bound parameter; the ORDER BY column and direction
are picked from fixed allow-lists.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union
from uuid import UUID

from .exceptions import NothingToUpdate
from .schemas import TodoUpdate

TODO_COLUMNS = ("id", "title", "description", "status", "due_date", "created_at", "is_deleted")
SELECT_TODO = f"SELECT {', '.join(TODO_COLUMNS)} FROM todos"

SORTABLE_FIELDS = ("id", "title", "status", "due_date", "created_at")
DEFAULT_SORT_FIELD = "created_at"
ASCENDING = "ASC"
DESCENDING = "DESC"

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

NOT_DELETED = "is_deleted = 0"

Rendered = Tuple[str, List[Any]]

# Largest value sqlite accepts as a bound INTEGER.
MAX_SQL_INT = 2**63 - 1


# PUBLIC_INTERFACE
def parse_positive_int(raw: Union[str, int, None], default: int) -> int:
    """
    Parse a page/limit query value. Missing, non-numeric, < 1 or out of
    64-bit range values give `default`.
    """
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if value < 1 or value > MAX_SQL_INT:
        return default
    return value


# PUBLIC_INTERFACE
def normalize_sort_field(raw: Optional[str]) -> str:
    """Return `raw` if it is an allowed sort column, else created_at."""
    for name in SORTABLE_FIELDS:
        if raw == name:
            return name
    return DEFAULT_SORT_FIELD


# PUBLIC_INTERFACE
def normalize_sort_order(raw: Optional[str]) -> str:
    """Only the exact string 'ASC' sorts ascending; everything else is DESC."""
    return ASCENDING if raw == ASCENDING else DESCENDING


# PUBLIC_INTERFACE
def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit) in integer arithmetic; 0 when there are no rows."""
    if total <= 0:
        return 0
    return (total + limit - 1) // limit


@dataclass(frozen=True)
class Predicate:
    """A single `column = ?` style condition and the value bound to it."""

    sql: str
    param: Any


@dataclass
class QuerySpec:
    """
    An ordered list of predicates over the todos table. Predicates are ANDed
    in insertion order, after the "not deleted" base condition.
    """

    predicates: List[Predicate] = field(default_factory=list)

    def add(self, sql: str, param: Any) -> "QuerySpec":
        self.predicates.append(Predicate(sql, param))
        return self

    def where_sql(self) -> str:
        clauses = [NOT_DELETED, *(p.sql for p in self.predicates)]
        return "WHERE " + " AND ".join(clauses)

    def params(self) -> List[Any]:
        return [p.param for p in self.predicates]


@dataclass(frozen=True)
class ListQuery:
    """
    Effective parameters of a filtered, sorted and paginated listing.

    Build it with `ListQuery.from_params` so that raw query-string values are
    normalized: page/limit default to 1/10, unknown sort fields fall back to
    created_at and anything but 'ASC' sorts descending.
    """

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    status: Optional[str] = None
    due_date: Optional[str] = None
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: str = DESCENDING

    @classmethod
    def from_params(
        cls,
        page: Union[str, int, None] = None,
        limit: Union[str, int, None] = None,
        status: Optional[str] = None,
        due_date: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> "ListQuery":
        effective_page = parse_positive_int(page, DEFAULT_PAGE)
        effective_limit = parse_positive_int(limit, DEFAULT_LIMIT)
        # A page whose offset cannot be bound is treated like an invalid page.
        if (effective_page - 1) * effective_limit > MAX_SQL_INT:
            effective_page = DEFAULT_PAGE
        return cls(
            page=effective_page,
            limit=effective_limit,
            status=status or None,
            due_date=due_date or None,
            sort_by=normalize_sort_field(sort_by),
            sort_order=normalize_sort_order(sort_order),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def filters(self) -> QuerySpec:
        # Order matters: status first, then due date.
        spec = QuerySpec()
        if self.status:
            spec.add("status = ?", self.status)
        if self.due_date:
            spec.add("due_date = ?", self.due_date)
        return spec


# PUBLIC_INTERFACE
def build_list_query(query: ListQuery) -> Rendered:
    """Render the page query: filters, then ORDER BY, then LIMIT/OFFSET."""
    spec = query.filters()
    # Both identifiers below come from module constants, never from the request.
    sort_by = normalize_sort_field(query.sort_by)
    sort_order = normalize_sort_order(query.sort_order)
    sql = f"{SELECT_TODO} {spec.where_sql()} ORDER BY {sort_by} {sort_order} LIMIT ? OFFSET ?"
    return sql, [*spec.params(), query.limit, query.offset]


# PUBLIC_INTERFACE
def build_count_query(query: ListQuery) -> Rendered:
    """Render the COUNT(*) query matching the same filters as `build_list_query`."""
    spec = query.filters()
    return f"SELECT COUNT(*) AS cnt FROM todos {spec.where_sql()}", spec.params()


@dataclass(frozen=True)
class Assignment:
    column: str
    value: Any


@dataclass(frozen=True)
class UpdateSpec:
    """The ordered SET assignments of a partial update."""

    assignments: Tuple[Assignment, ...]

    @property
    def columns(self) -> List[str]:
        return [a.column for a in self.assignments]

    def render(self, todo_id: UUID) -> Rendered:
        set_sql = ", ".join(f"{a.column} = ?" for a in self.assignments)
        params = [a.value for a in self.assignments]
        return f"UPDATE todos SET {set_sql} WHERE id = ?", [*params, str(todo_id)]


# PUBLIC_INTERFACE
def build_update(data: TodoUpdate) -> UpdateSpec:
    """
    Collect the fields of `data` that carry a value, in the fixed order
    title, description, status, due_date.

    Empty strings and a missing due date count as "not supplied".

    Raises:
        NothingToUpdate: if no field qualifies.
    """
    assignments: List[Assignment] = []
    if data.title:
        assignments.append(Assignment("title", data.title))
    if data.description:
        assignments.append(Assignment("description", data.description))
    if data.status:
        assignments.append(Assignment("status", data.status))
    if data.due_date is not None:
        assignments.append(Assignment("due_date", data.due_date.isoformat()))
    if not assignments:
        raise NothingToUpdate()
    return UpdateSpec(tuple(assignments))
