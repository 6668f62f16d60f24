"""Maintenance script to rebuild membership sets from accepted follow edges.

Usage:
    uv run python scripts/reconcile_memberships.py

Environment overrides:
    RECONCILE_ACCOUNT_BATCH_SIZE=200
    RECONCILE_MAX_ACCOUNTS_PER_RUN=1000
    RECONCILE_MAX_ELAPSED_SECONDS=60
"""

from __future__ import annotations

import asyncio
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import ColumnElement

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from db.session import AsyncSessionMaker  # noqa: E402
from models import Account  # noqa: E402
from services.graph import reconcile  # noqa: E402

ACCOUNT_BATCH_SIZE_ENV = "RECONCILE_ACCOUNT_BATCH_SIZE"
MAX_ACCOUNTS_PER_RUN_ENV = "RECONCILE_MAX_ACCOUNTS_PER_RUN"
MAX_ELAPSED_SECONDS_ENV = "RECONCILE_MAX_ELAPSED_SECONDS"
DEFAULT_ACCOUNT_BATCH_SIZE = 200
DEFAULT_MAX_ACCOUNTS_PER_RUN = 1000
DEFAULT_MAX_ELAPSED_SECONDS = 60


@dataclass(slots=True)
class ReconcileRunSummary:
    accounts_scanned: int = 0
    accounts_repaired: int = 0
    rows_added: int = 0
    rows_removed: int = 0
    edges_purged: int = 0
    stop_reason: str = "completed"


def _parse_positive_int(raw_value: str | None, *, default: int, label: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{label} must be an integer") from exc
    if parsed <= 0:
        raise ValueError(f"{label} must be positive")
    return parsed


def _gt(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column > value)


async def _load_account_ids(
    session_maker: async_sessionmaker[AsyncSession],
    *,
    batch_size: int,
    after_account_id: str | None,
) -> list[str]:
    async with session_maker() as session:
        account_id_column = cast(ColumnElement[str], Account.id)
        stmt = select(account_id_column).order_by(account_id_column).limit(batch_size)
        if after_account_id is not None:
            stmt = stmt.where(_gt(account_id_column, after_account_id))
        result = await session.execute(stmt)
        return [account_id for (account_id,) in result.all()]


async def run(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> ReconcileRunSummary:
    maker = session_maker or AsyncSessionMaker
    batch_size = _parse_positive_int(
        os.getenv(ACCOUNT_BATCH_SIZE_ENV),
        default=DEFAULT_ACCOUNT_BATCH_SIZE,
        label=ACCOUNT_BATCH_SIZE_ENV,
    )
    max_accounts_per_run = _parse_positive_int(
        os.getenv(MAX_ACCOUNTS_PER_RUN_ENV),
        default=DEFAULT_MAX_ACCOUNTS_PER_RUN,
        label=MAX_ACCOUNTS_PER_RUN_ENV,
    )
    max_elapsed_seconds = _parse_positive_int(
        os.getenv(MAX_ELAPSED_SECONDS_ENV),
        default=DEFAULT_MAX_ELAPSED_SECONDS,
        label=MAX_ELAPSED_SECONDS_ENV,
    )

    started_at = perf_counter()
    summary = ReconcileRunSummary()
    after_account_id: str | None = None

    while summary.stop_reason == "completed":
        account_ids = await _load_account_ids(
            maker,
            batch_size=batch_size,
            after_account_id=after_account_id,
        )
        if not account_ids:
            break

        for account_id in account_ids:
            if summary.accounts_scanned >= max_accounts_per_run:
                summary.stop_reason = "max_accounts"
                break
            if perf_counter() - started_at >= max_elapsed_seconds:
                summary.stop_reason = "max_elapsed_seconds"
                break

            summary.accounts_scanned += 1
            async with maker() as session:
                result = await reconcile(session, account_id=account_id)
            if result.changed:
                summary.accounts_repaired += 1
                summary.rows_added += result.added
                summary.rows_removed += result.removed
                summary.edges_purged += result.purged_edges
                print(
                    f"Reconciled account {account_id}: "
                    f"added={result.added}, removed={result.removed}, "
                    f"purged_edges={result.purged_edges}"
                )

        after_account_id = account_ids[-1]

    elapsed_ms = int((perf_counter() - started_at) * 1000)
    print(
        "Membership reconcile complete: "
        f"accounts_scanned={summary.accounts_scanned}, "
        f"accounts_repaired={summary.accounts_repaired}, "
        f"rows_added={summary.rows_added}, rows_removed={summary.rows_removed}, "
        f"edges_purged={summary.edges_purged}, "
        f"elapsed_ms={elapsed_ms}, stop_reason={summary.stop_reason}"
    )
    return summary


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
