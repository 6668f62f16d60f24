"""Database helpers."""

from .errors import affected_rows, is_check_violation, is_unique_violation
from .session import AsyncSessionMaker, async_engine, get_session
from .upsert import insert_if_absent

__all__ = [
    "AsyncSessionMaker",
    "affected_rows",
    "async_engine",
    "get_session",
    "insert_if_absent",
    "is_check_violation",
    "is_unique_violation",
]
