from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence, Union
from uuid import UUID

from .queries import ListQuery, total_pages


# PUBLIC_INTERFACE
def pagination_envelope(
    items: Union[Sequence[Any], Iterable[Any]],
    total: int,
    query: ListQuery,
) -> Dict[str, Any]:
    """
    Build the page envelope returned by the filtered listing endpoint.

    Args:
        items: The list/iterable of items for the current page.
        total: Total number of items that match the filters (ignoring pagination).
        query: The normalized listing parameters (effective page and limit).

    Returns:
        Dict with keys: status, todos, current_page, total_pages, total_todos.
    """
    materialized: List[Any] = list(items) if not isinstance(items, list) else items
    return {
        "status": 200,
        "todos": materialized,
        "current_page": query.page,
        "total_pages": total_pages(total, query.limit),
        "total_todos": int(total),
    }


def parse_uuid(raw: Any) -> Union[UUID, None]:
    """Return `raw` as a UUID, or None when it is missing or malformed."""
    if not raw:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        return None
