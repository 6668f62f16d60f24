"""Database seed script for local development.

Usage:
    uv run python scripts/seed.py

Creates a handful of demo accounts and wires follows, a friendship and a
pending request between them through the relationship engine.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from db.session import AsyncSessionMaker  # noqa: E402
from models import Account  # noqa: E402
from services.graph import (  # noqa: E402
    DuplicateError,
    accept_request,
    submit_follow,
    submit_friend,
)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(frozen=True)
class SeedAccount:
    username: str
    is_private: bool = False


BASE_ACCOUNTS: Sequence[SeedAccount] = [
    SeedAccount("demo_alex"),
    SeedAccount("demo_bella"),
    SeedAccount("demo_chris", is_private=True),
    SeedAccount("demo_dana"),
]
FOLLOWS: Sequence[tuple[str, str]] = [
    ("demo_alex", "demo_bella"),
    ("demo_bella", "demo_alex"),
    ("demo_dana", "demo_alex"),
    ("demo_alex", "demo_chris"),
]
FRIENDSHIPS: Sequence[tuple[str, str]] = [("demo_dana", "demo_bella")]


async def _get_or_create(session: AsyncSession, seed: SeedAccount) -> Account:
    result = await session.execute(select(Account).where(_eq(Account.username, seed.username)))
    account = result.scalar_one_or_none()
    if account is not None:
        return account
    account = Account(username=seed.username, is_private=seed.is_private)
    session.add(account)
    await session.commit()
    print(f"Created account {seed.username} ({account.id})")
    return account


async def run() -> None:
    async with AsyncSessionMaker() as session:
        ids: dict[str, str] = {}
        for seed in BASE_ACCOUNTS:
            account = await _get_or_create(session, seed)
            ids[seed.username] = account.id

        for sender, receiver in FOLLOWS:
            try:
                result = await submit_follow(
                    session, sender_id=ids[sender], receiver_id=ids[receiver]
                )
            except DuplicateError:
                continue
            state = "requested" if result.is_pending else "following"
            print(f"{sender} -> {receiver}: {state}")

        for sender, receiver in FRIENDSHIPS:
            try:
                request = await submit_friend(
                    session, sender_id=ids[sender], receiver_id=ids[receiver]
                )
            except DuplicateError:
                continue
            await accept_request(
                session, edge_id=request.edge.id, acting_account_id=ids[receiver]
            )
            print(f"{sender} <-> {receiver}: friends")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
