"""Dialect-aware insert-if-absent statements."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import affected_rows


async def insert_if_absent(
    session: AsyncSession,
    model: Any,
    rows: list[dict[str, Any]],
) -> int:
    """Insert rows, skipping any that collide with an existing key.

    Returns the number of rows actually inserted. Does not commit.
    """
    if not rows:
        return 0

    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        stmt = postgresql.insert(model).values(rows).on_conflict_do_nothing()
    elif dialect_name == "sqlite":
        stmt = sqlite.insert(model).values(rows).on_conflict_do_nothing()
    else:
        raise NotImplementedError(f"insert_if_absent is not supported on {dialect_name}")

    result = await session.execute(stmt)
    return affected_rows(result)


__all__ = ["insert_if_absent"]
