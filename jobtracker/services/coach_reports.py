"""Coach report snapshots — persist, list and compare analytics runs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.api.db_helpers import atomic, get_or_404
from jobtracker.models.tables import CoachReport
from jobtracker.schemas.pydantic import (
    ActionCard,
    CoachCompareOut,
    CoachReportCreate,
    CoachReportOut,
    PipelineInsights,
)
from jobtracker.services.analytics import TipThresholds, compare_snapshots, compute_insights
from jobtracker.services.application_store import fetch_snapshots
from jobtracker.services.event_log import fetch_lifecycle_events
from jobtracker.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_TAKE = 20
MAX_HISTORY_TAKE = 100


def build_report_payload(
    insights: PipelineInsights,
    range_days: int,
    *,
    title: str | None = None,
    summary: str | None = None,
    priorities: list | dict | None = None,
) -> CoachReportCreate:
    """Wrap an analytics run as a snapshot request."""
    return CoachReportCreate(
        range_days=range_days,
        total_applications=insights.total_applications,
        by_status=insights.by_status,
        daily_created=insights.daily_created,
        funnel=insights.funnel,
        avg_days_in_pipeline=insights.avg_days_in_pipeline,
        avg_time_per_stage=insights.avg_time_per_stage,
        reached_count=insights.reached_count,
        title=title,
        summary=summary,
        priorities=priorities if priorities is not None else [t.model_dump() for t in insights.tips],
    )


async def save_report(db: AsyncSession, body: CoachReportCreate) -> int | None:
    """Persist an immutable snapshot; returns its id, or None when ``save`` is off.

    Per-status reached counts are stored as one cross-status total.
    """
    if not body.save:
        return None

    daily = body.daily_created
    if isinstance(daily, list):
        daily = [d.model_dump() for d in daily]

    report = CoachReport(
        range_days=body.range_days,
        total_applications=body.total_applications,
        by_status=body.by_status,
        daily_created=daily,
        funnel=body.funnel.model_dump(),
        avg_days_in_pipeline=round(float(body.avg_days_in_pipeline), 1),
        avg_time_per_stage=body.avg_time_per_stage,
        reached_count=sum(int(n or 0) for n in body.reached_count.values()),
        title=body.title,
        summary=body.summary,
        priorities=body.priorities,
    )
    async with atomic(db, "Save coach report"):
        db.add(report)
    logger.info("Saved %d-day coach report %s", report.range_days, report.id)
    return report.id


def _default_summary(insights: PipelineInsights, range_days: int) -> str:
    lead = insights.tips[0].title if insights.tips else "No coaching signals yet"
    return f"{insights.total_applications} applications in the last {range_days} days. {lead}."


async def create_snapshot(
    db: AsyncSession,
    range_days: int,
    *,
    title: str | None = None,
    summary: str | None = None,
    now: datetime | None = None,
    thresholds: TipThresholds | None = None,
) -> int | None:
    """Run the analytics over applications created in the window and store the result."""
    now = now or utcnow()
    since = now - timedelta(days=range_days)
    apps = [a for a in await fetch_snapshots(db) if as_utc(a.created_at) >= since]
    in_window = {a.id for a in apps}
    events = [e for e in await fetch_lifecycle_events(db) if e.application_id in in_window]

    insights = compute_insights(
        apps, events, now, window_days=range_days, thresholds=thresholds
    )
    payload = build_report_payload(
        insights,
        range_days,
        title=title or f"{range_days}-day pipeline report",
        summary=summary or _default_summary(insights, range_days),
    )
    return await save_report(db, payload)


async def latest_report(db: AsyncSession, range_days: int) -> CoachReport | None:
    result = await db.execute(
        select(CoachReport)
        .where(CoachReport.range_days == range_days)
        .order_by(CoachReport.created_at.desc(), CoachReport.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def clamp_take(take: int | None, default: int = DEFAULT_HISTORY_TAKE, maximum: int = MAX_HISTORY_TAKE) -> int:
    if take is None:
        return default
    return min(max(take, 1), maximum)


async def report_history(db: AsyncSession, take: int | None = None) -> list[CoachReport]:
    """Most recent snapshots first, at most ``take`` (clamped to 1..100)."""
    result = await db.execute(
        select(CoachReport)
        .order_by(CoachReport.created_at.desc(), CoachReport.id.desc())
        .limit(clamp_take(take))
    )
    return list(result.scalars().all())


async def get_report(db: AsyncSession, report_id: int) -> CoachReport:
    return await get_or_404(db, CoachReport, report_id, "Report not found")


def action_cards(latest7: object | None) -> list[ActionCard]:
    if latest7 is None:
        return []
    return [
        ActionCard(
            title="Keep momentum",
            body=(
                "Your pipeline looks balanced. Keep a steady cadence: apply to 3-5 quality "
                "roles/week, follow up within 24 hours after interviews, and keep projects updated."
            ),
            priority="low",
        )
    ]


async def compare_latest(db: AsyncSession) -> CoachCompareOut:
    """Latest 7-day snapshot against the latest 30-day one."""
    latest7 = await latest_report(db, 7)
    latest30 = await latest_report(db, 30)
    return CoachCompareOut(
        latest7=CoachReportOut.model_validate(latest7) if latest7 else None,
        latest30=CoachReportOut.model_validate(latest30) if latest30 else None,
        delta=compare_snapshots(latest7, latest30),
        action_cards=action_cards(latest7),
    )
