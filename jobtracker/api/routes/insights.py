"""Pipeline insights route — metrics and coaching tips computed on read."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.config import get_settings
from jobtracker.models.database import get_db
from jobtracker.schemas.pydantic import PipelineInsights
from jobtracker.services.analytics import TipThresholds, compute_insights
from jobtracker.services.application_store import fetch_snapshots
from jobtracker.services.event_log import fetch_lifecycle_events
from jobtracker.utils import utcnow

router = APIRouter(prefix="/api/insights", tags=["insights"])


@router.get("", response_model=PipelineInsights)
async def get_insights(db: AsyncSession = Depends(get_db)):
    """Status histogram, funnel, stage timing, daily activity and tips."""
    settings = get_settings()
    apps = await fetch_snapshots(db)
    events = await fetch_lifecycle_events(db)
    return compute_insights(
        apps,
        events,
        utcnow(),
        window_days=settings.activity_window_days,
        thresholds=TipThresholds.from_settings(settings),
    )
