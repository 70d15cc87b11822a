"""AI coach routes — stored analytics snapshots, history and 7 vs 30 day comparison."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.config import get_settings
from jobtracker.models.database import get_db
from jobtracker.schemas.pydantic import (
    CoachCompareOut,
    CoachHistoryRow,
    CoachReportCreate,
    CoachReportOut,
    CoachReportSaved,
    CoachSnapshotRequest,
)
from jobtracker.services import coach_reports
from jobtracker.services.analytics import TipThresholds

router = APIRouter(prefix="/api/ai/coach", tags=["coach"])


@router.post("", response_model=CoachReportSaved)
async def save_coach_report(body: CoachReportCreate, db: AsyncSession = Depends(get_db)):
    """Store a client-assembled coach report (skipped when ``save`` is false)."""
    saved_id = await coach_reports.save_report(db, body)
    return CoachReportSaved(saved_id=saved_id)


@router.post("/snapshot", response_model=CoachReportSaved)
async def create_coach_snapshot(body: CoachSnapshotRequest, db: AsyncSession = Depends(get_db)):
    """Compute insights for the last 7 or 30 days and store them as a report."""
    saved_id = await coach_reports.create_snapshot(
        db,
        body.range_days,
        title=body.title,
        summary=body.summary,
        thresholds=TipThresholds.from_settings(get_settings()),
    )
    return CoachReportSaved(saved_id=saved_id)


@router.get("/compare", response_model=CoachCompareOut)
async def compare_reports(db: AsyncSession = Depends(get_db)):
    """Latest 7-day report against the latest 30-day report."""
    return await coach_reports.compare_latest(db)


@router.get("/history", response_model=list[CoachHistoryRow])
async def report_history(
    take: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Most recent reports first; ``take`` is clamped to 1..100 (default 20)."""
    rows = await coach_reports.report_history(db, take)
    return [CoachHistoryRow.model_validate(r) for r in rows]


@router.get("/report/{report_id}", response_model=CoachReportOut)
async def get_report(report_id: int, db: AsyncSession = Depends(get_db)):
    """One full stored report."""
    report = await coach_reports.get_report(db, report_id)
    return CoachReportOut.model_validate(report)
