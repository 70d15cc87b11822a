"""Application store: reads, single-row writes and atomic board orderings.

``order`` and ``status`` are only ever written through ``_apply_ordering``,
inside one ``atomic`` block per user gesture, so each column keeps the dense
``0..n-1`` numbering even when a write fails half way.
"""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.api.db_helpers import apply_update, atomic, fetch_by_ids, get_or_404
from jobtracker.exceptions import ValidationFailedError
from jobtracker.models.tables import Application, ApplicationEvent
from jobtracker.schemas.pydantic import ApplicationCreate, ApplicationUpdate
from jobtracker.services.analytics import AppSnapshot
from jobtracker.services.board import (
    Board,
    MoveCommand,
    MovePlan,
    OrderUpdate,
    plan_column_order,
    plan_move,
    validate_ordering,
)
from jobtracker.services.event_log import append_event
from jobtracker.status import STATUSES, ApplicationStatus, EventType, parse_status

logger = logging.getLogger(__name__)

_REQUIRED_TEXT_FIELDS = ("company", "role")


# ── Reads ─────────────────────────────────────────────────────────────


async def list_applications(db: AsyncSession) -> list[Application]:
    """All applications, newest first."""
    result = await db.execute(
        select(Application).order_by(Application.created_at.desc(), Application.id.desc())
    )
    return list(result.scalars().all())


async def get_application(db: AsyncSession, application_id: int) -> Application:
    return await get_or_404(db, Application, application_id, "Application not found")


async def fetch_snapshots(db: AsyncSession) -> list[AppSnapshot]:
    result = await db.execute(
        select(Application.id, Application.status, Application.created_at)
    )
    return [
        AppSnapshot(id=row.id, status=row.status, created_at=row.created_at)
        for row in result.all()
    ]


async def find_missing_ids(db: AsyncSession, ids: Sequence[int]) -> set[int]:
    found = await fetch_by_ids(db, Application, ids)
    return set(ids) - set(found)


async def load_board(db: AsyncSession) -> Board:
    result = await db.execute(select(Application.id, Application.status, Application.order))
    return Board.from_positions((row.id, row.status, row.order) for row in result.all())


async def list_board(db: AsyncSession) -> dict[str, list[Application]]:
    """Applications grouped by status, each column in render order."""
    result = await db.execute(
        select(Application).order_by(Application.order.asc(), Application.id.asc())
    )
    columns: dict[str, list[Application]] = {s.value: [] for s in STATUSES}
    for app in result.scalars().all():
        columns.setdefault(app.status, []).append(app)
    return columns


async def _column_size(db: AsyncSession, status: ApplicationStatus) -> int:
    result = await db.execute(
        select(func.count(Application.id)).where(Application.status == status.value)
    )
    return result.scalar_one()


# ── Ordering writes ───────────────────────────────────────────────────


def _write_row(db: AsyncSession, row: Application, update: OrderUpdate) -> None:
    if update.status is not None and row.status != update.status.value:
        append_event(
            db,
            row.id,
            EventType.STATUS_CHANGE,
            to_status=update.status,
            from_status=row.status,
        )
        row.status = update.status.value
    row.order = update.order


async def _apply_ordering(db: AsyncSession, updates: Sequence[OrderUpdate]) -> None:
    """Stage every ordering write in the caller's transaction.

    Rows are loaded once, inside the transaction; if any id is gone nothing
    is written.
    """
    rows = await fetch_by_ids(db, Application, [u.id for u in updates])
    missing = sorted({u.id for u in updates} - set(rows))
    if missing:
        logger.warning("Rejected ordering write: unknown ids %s", missing)
        raise ValidationFailedError(f"Unknown application ids: {missing}")
    for update in updates:
        _write_row(db, rows[update.id], update)


async def commit_ordering(db: AsyncSession, updates: Sequence[OrderUpdate]) -> None:
    """Apply a batch of ``(id, order, status?)`` writes all-or-nothing.

    Validation runs before any write: ids must exist and be unique, orders
    non-negative, statuses from the closed set. A status that actually
    changes appends one STATUS_CHANGE event in the same transaction.
    """
    validate_ordering([u.id for u in updates])
    for update in updates:
        if update.order < 0:
            raise ValidationFailedError(f"Invalid order {update.order} for application {update.id}")
        if update.status is not None:
            parse_status(update.status)

    async with atomic(db, "Reorder"):
        await _apply_ordering(db, updates)


async def move_application(db: AsyncSession, command: MoveCommand) -> MovePlan:
    """Plan a drag-and-drop move against a fresh board snapshot and commit it."""
    await get_application(db, command.moved_id)
    board = await load_board(db)
    plan = command.plan(board)
    if plan.is_noop:
        return plan

    await commit_ordering(db, plan.updates)
    logger.info(
        "Moved application %s: %s -> %s (%d rows)",
        plan.moved_id, plan.source_status.value, plan.dest_status.value, len(plan.updates),
    )
    return plan


async def reorder_column(
    db: AsyncSession,
    status: ApplicationStatus | str,
    ordered_ids: Sequence[int],
) -> tuple[OrderUpdate, ...]:
    """Make one column read exactly *ordered_ids*, in one transaction."""
    status = parse_status(status)
    ids = validate_ordering(ordered_ids)
    missing = await find_missing_ids(db, ids)
    if missing:
        logger.warning("Rejected column reorder: unknown ids %s", sorted(missing))
        raise ValidationFailedError(f"Unknown application ids: {sorted(missing)}")

    board = await load_board(db)
    updates = plan_column_order(board, status, ids)
    await commit_ordering(db, updates)
    return updates


# ── Single-row writes ─────────────────────────────────────────────────


async def create_application(db: AsyncSession, body: ApplicationCreate) -> Application:
    """Insert at the end of its column and log the CREATED event."""
    status = parse_status(body.status)
    app = Application(
        company=body.company,
        role=body.role,
        status=status.value,
        order=await _column_size(db, status),
        location=body.location,
        job_url=body.job_url,
    )
    async with atomic(db, "Create application"):
        db.add(app)
        await db.flush()
        append_event(db, app.id, EventType.CREATED, to_status=status)
    await db.refresh(app)
    return app


async def update_application(
    db: AsyncSession,
    application_id: int,
    body: ApplicationUpdate,
) -> Application:
    """Update free-form fields; a status change moves the card to the end of its new column."""
    app = await get_application(db, application_id)
    changes = body.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)

    for name in _REQUIRED_TEXT_FIELDS:
        if name in changes:
            value = (changes[name] or "").strip()
            if not value:
                raise ValidationFailedError(f"{name} must not be blank")
            changes[name] = value

    plan: MovePlan | None = None
    if new_status is not None and new_status.value != app.status:
        board = await load_board(db)
        plan = plan_move(board, app.id, new_status, len(board.column(new_status)))

    async with atomic(db, "Update application"):
        apply_update(app, changes)
        if plan is not None:
            await _apply_ordering(db, plan.updates)
    await db.refresh(app)
    return app


async def delete_application(db: AsyncSession, application_id: int) -> dict:
    """Delete the row and its events, closing the gap it leaves in its column."""
    app = await get_application(db, application_id)
    board = await load_board(db)
    remaining = [i for i in board.column(parse_status(app.status)) if i != app.id]

    async with atomic(db, "Delete application"):
        await db.execute(
            delete(ApplicationEvent).where(ApplicationEvent.application_id == app.id)
        )
        await db.delete(app)
        await _apply_ordering(
            db, [OrderUpdate(app_id, index) for index, app_id in enumerate(remaining)]
        )
    return {"status": "deleted"}


async def backfill_order(db: AsyncSession) -> dict[str, int]:
    """Renumber every column by creation time. Returns column sizes."""
    sizes: dict[str, int] = {}
    async with atomic(db, "Backfill order"):
        for status in STATUSES:
            result = await db.execute(
                select(Application)
                .where(Application.status == status.value)
                .order_by(Application.created_at.asc(), Application.id.asc())
            )
            rows = result.scalars().all()
            for index, row in enumerate(rows):
                row.order = index
            sizes[status.value] = len(rows)
    return sizes
