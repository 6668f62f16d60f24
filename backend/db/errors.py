"""Database error helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION_SQLSTATE = "23505"
CHECK_VIOLATION_SQLSTATE = "23514"


def _sqlstate(error: IntegrityError) -> str | None:
    original = getattr(error, "orig", None)
    return getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError indicates a unique-constraint conflict."""
    if _sqlstate(error) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(getattr(error, "orig", None) or error).lower()
    return "duplicate key" in message or "unique constraint" in message


def is_check_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError comes from a CHECK constraint."""
    if _sqlstate(error) == CHECK_VIOLATION_SQLSTATE:
        return True
    message = str(getattr(error, "orig", None) or error).lower()
    return "check constraint" in message


def affected_rows(result: Any) -> int:
    """Row count reported by an UPDATE/DELETE result, 0 when unknown."""
    return int(getattr(result, "rowcount", 0) or 0)


__all__ = ["affected_rows", "is_check_violation", "is_unique_violation"]
