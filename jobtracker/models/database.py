from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from jobtracker.config import get_settings

DATABASE_URL = get_settings().database_url


def _engine_options(url: str) -> dict:
    """Pool settings for server databases; SQLite (tests, local dev) takes none."""
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 5,
        "max_overflow": 5,
        # Validate connections before use; drops stale connections from the pool.
        "pool_pre_ping": True,
        # Recycle connections after 30 min to avoid silent server-side timeouts.
        "pool_recycle": 1800,
        # Raise immediately if no connection is available within 30 s.
        "pool_timeout": 30,
    }


engine = create_async_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:  # type: ignore[misc]
    async with async_session() as session:
        yield session
