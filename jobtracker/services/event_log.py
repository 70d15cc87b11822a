"""Append-only application lifecycle log."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.models.tables import ApplicationEvent
from jobtracker.services.analytics import EventSnapshot
from jobtracker.status import ApplicationStatus, EventType


def append_event(
    db: AsyncSession,
    application_id: int,
    event_type: EventType,
    to_status: ApplicationStatus | str,
    from_status: ApplicationStatus | str | None = None,
) -> ApplicationEvent:
    """Stage one event row in the caller's transaction; the caller commits."""
    event = ApplicationEvent(
        application_id=application_id,
        type=EventType(event_type).value,
        from_status=ApplicationStatus(from_status).value if from_status is not None else None,
        to_status=ApplicationStatus(to_status).value,
    )
    db.add(event)
    return event


async def fetch_lifecycle_events(db: AsyncSession) -> list[EventSnapshot]:
    """All CREATED / STATUS_CHANGE events, per application in time order."""
    result = await db.execute(
        select(ApplicationEvent)
        .where(ApplicationEvent.type.in_([t.value for t in EventType]))
        .order_by(
            ApplicationEvent.application_id.asc(),
            ApplicationEvent.created_at.asc(),
            ApplicationEvent.id.asc(),
        )
    )
    return [
        EventSnapshot(
            application_id=e.application_id,
            type=e.type,
            from_status=e.from_status,
            to_status=e.to_status,
            created_at=e.created_at,
        )
        for e in result.scalars().all()
    ]
