"""Shared database helpers to eliminate boilerplate in services and route handlers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.exceptions import NotFoundError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def get_or_404(
    db: AsyncSession,
    model: Type[T],
    obj_id: int,
    detail: str = "Not found",
) -> T:
    """Fetch a single row by primary key, or raise NotFoundError (HTTP 404)."""
    result = await db.execute(select(model).where(model.id == obj_id))  # type: ignore[attr-defined]
    obj = result.scalar_one_or_none()
    if not obj:
        raise NotFoundError(detail)
    return obj  # type: ignore[return-value]


async def fetch_by_ids(
    db: AsyncSession,
    model: Type[T],
    ids: Iterable[int],
) -> dict[int, T]:
    """Return ``{id: row}`` for the ids that exist; missing ids are simply absent."""
    wanted = list(ids)
    if not wanted:
        return {}
    result = await db.execute(select(model).where(model.id.in_(wanted)))  # type: ignore[attr-defined]
    return {row.id: row for row in result.scalars().all()}  # type: ignore[attr-defined]


def apply_update(obj: Any, update_data: dict) -> None:
    """Set fields on an ORM object from a dict of {field: value}."""
    for field, value in update_data.items():
        setattr(obj, field, value)


@asynccontextmanager
async def atomic(db: AsyncSession, action: str) -> AsyncIterator[AsyncSession]:
    """Commit everything staged in the block as one transaction.

    Any failure rolls the whole block back. Database errors surface as
    StoreError so callers can tell "nothing was applied" from "not found".
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Store write failed during %s; rolled back", action)
        raise StoreError(f"{action} failed; no changes were applied") from exc
    except Exception:
        await db.rollback()
        raise
