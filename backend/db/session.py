"""Async engine and session factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from core import settings


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        return create_async_engine(database_url, echo=echo, connect_args=connect_args)
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


async_engine = build_engine(settings.database_url, echo=settings.database_echo)
AsyncSessionMaker = async_sessionmaker(async_engine, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionMaker() as session:
        yield session
