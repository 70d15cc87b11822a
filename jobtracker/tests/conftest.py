"""Shared fixtures for tracker tests."""

from __future__ import annotations

import os

# Settings validate at import time; point them at throwaway values first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from jobtracker.models.database import Base, get_db  # noqa: E402
from jobtracker.models.tables import Application, ApplicationEvent  # noqa: E402

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def t0() -> datetime:
    """Fixed reference instant for timing tests."""
    return T0


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app with get_db bound to the test database."""
    from jobtracker.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _seed_column(
    db: AsyncSession,
    status: str,
    companies: list[str],
    created_at: datetime = T0,
) -> list[int]:
    """Insert one column of applications (dense order, CREATED events) and return ids."""
    ids = []
    for index, company in enumerate(companies):
        app = Application(
            company=company,
            role="Engineer",
            status=status,
            order=index,
            created_at=created_at + timedelta(minutes=index),
            updated_at=created_at,
        )
        db.add(app)
        await db.flush()
        db.add(
            ApplicationEvent(
                application_id=app.id,
                type="CREATED",
                to_status=status,
                created_at=app.created_at,
            )
        )
        ids.append(app.id)
    await db.commit()
    return ids


@pytest.fixture
def seed(db):
    """``await seed("APPLIED", ["A", "B"])`` inserts a column and returns its ids."""

    async def _seed(status: str, companies: list[str], created_at: datetime = T0) -> list[int]:
        return await _seed_column(db, status, companies, created_at)

    return _seed
