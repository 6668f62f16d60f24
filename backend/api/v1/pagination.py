"""Limit/offset paging shared by the list endpoints."""

from collections.abc import Sequence
from typing import Annotated, TypeVar

from fastapi import Query, Response

MAX_PAGE_SIZE = 100

PageLimit = Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)]
PageOffset = Annotated[int, Query(ge=0)]

T = TypeVar("T")


def fetch_limit(limit: int | None) -> int | None:
    """Rows to request so that one extra row reveals a further page."""
    return None if limit is None else limit + 1


def set_next_offset_header(
    response: Response,
    *,
    offset: int,
    limit: int,
    has_more: bool,
) -> None:
    if has_more:
        response.headers["X-Next-Offset"] = str(offset + limit)


def paginate(
    rows: Sequence[T],
    response: Response,
    *,
    limit: int | None,
    offset: int,
) -> list[T]:
    """Trim the probe row and advertise the next offset when there is one."""
    if limit is None:
        return list(rows)
    set_next_offset_header(response, offset=offset, limit=limit, has_more=len(rows) > limit)
    return list(rows[:limit])
