"""Pytest fixtures for the social graph backend."""

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from pathlib import Path
from typing import Any
from uuid import uuid4

from alembic import command
from alembic.config import Config
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from api.deps import get_db
from app import create_app
from models import Account
from services.notifications import NotificationEvent, NotificationType

AccountFactory = Callable[..., Awaitable[Account]]


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(alembic_cfg, "head")


class RecordingNotifier:
    """Dispatcher double that keeps every emitted event in memory."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def emit(
        self,
        type: NotificationType,
        from_id: str,
        to_id: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.events.append(
            NotificationEvent(
                type=NotificationType(type),
                from_id=from_id,
                to_id=to_id,
                context=dict(context or {}),
            )
        )

    async def shutdown(self) -> None:
        self.stopped = True

    def of_type(self, type: NotificationType) -> list[NotificationEvent]:
        return [event for event in self.events if event.type == type]


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "socialgraph-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def app(session_maker, notifier: RecordingNotifier) -> Iterator[FastAPI]:
    """Create the FastAPI app with a test database dependency override."""
    application = create_app(notifier=notifier)

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture()
def make_account(session_maker) -> AccountFactory:
    """Insert an account row and return it."""

    async def factory(prefix: str = "user", *, is_private: bool = False) -> Account:
        account = Account(username=f"{prefix}_{uuid4().hex[:8]}", is_private=is_private)
        async with session_maker() as session:
            session.add(account)
            await session.commit()
        return account

    return factory

