"""Pydantic v2 models for all request/response shapes."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jobtracker.status import ApplicationStatus

# Shared config for all response schemas that are built from ORM objects
_ORM_CONFIG = ConfigDict(from_attributes=True)

Severity = Literal["high", "medium", "low"]


# ── Applications ───────────────────────────────────────────────────────
class ApplicationCreate(BaseModel):
    company: str = Field(max_length=200)
    role: str = Field(max_length=200)
    status: ApplicationStatus = ApplicationStatus.APPLIED
    location: str | None = Field(None, max_length=200)
    job_url: str | None = Field(None, max_length=2000)

    @field_validator("company", "role")
    @classmethod
    def _required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ApplicationUpdate(BaseModel):
    """Single-row update. Column position is only changed through the board."""

    company: str | None = Field(None, max_length=200)
    role: str | None = Field(None, max_length=200)
    status: ApplicationStatus | None = None
    location: str | None = Field(None, max_length=200)
    job_url: str | None = Field(None, max_length=2000)
    ai_summary: str | None = None
    follow_up_email_subject: str | None = None
    follow_up_email_body: str | None = None


class ApplicationOut(BaseModel):
    model_config = _ORM_CONFIG
    id: int
    company: str
    role: str
    status: ApplicationStatus
    order: int
    location: str | None
    job_url: str | None
    ai_summary: str | None
    follow_up_email_subject: str | None = None
    follow_up_email_body: str | None = None
    created_at: datetime
    updated_at: datetime


# ── Board ──────────────────────────────────────────────────────────────
class ReorderRequest(BaseModel):
    """Set one column to exactly this ordering."""

    status: ApplicationStatus
    ordered_ids: list[int] = Field(..., min_length=1)


class MoveRequest(BaseModel):
    """One drag-and-drop gesture.

    Dropping onto a card inserts before it (``over_application_id``); dropping
    onto a column appends to it unless ``dest_index`` is given.
    """

    application_id: int
    dest_status: ApplicationStatus | None = None
    dest_index: int | None = Field(None, ge=0)
    over_application_id: int | None = None


class BoardOut(BaseModel):
    columns: dict[str, list[ApplicationOut]]


class MoveOut(BaseModel):
    moved: bool
    board: BoardOut


# ── Insights ───────────────────────────────────────────────────────────
class Tip(BaseModel):
    title: str
    body: str
    severity: Severity
    metric: str | None = None


class Funnel(BaseModel):
    applied_to_interview: float = 0.0
    interview_to_offer: float = 0.0
    # Rough proxy: there is no terminal "accepted" status
    offer_to_accepted: float = 0.0


class DailyCount(BaseModel):
    date: str
    count: int


class PipelineInsights(BaseModel):
    total_applications: int
    by_status: dict[str, int]
    avg_days_in_pipeline: float = Field(
        description="Average application age in days since creation, across all applications",
    )
    funnel: Funnel
    daily_created: list[DailyCount]
    avg_time_per_stage: dict[str, float] = Field(
        description="Average days spent in each stage per application that reached it",
    )
    reached_count: dict[str, int]
    tips: list[Tip] = Field(default_factory=list)


# ── Coach reports ──────────────────────────────────────────────────────
class CoachReportCreate(BaseModel):
    range_days: Literal[7, 30]
    total_applications: int = Field(ge=0)
    by_status: dict[str, int]
    daily_created: list[DailyCount] | dict[str, int]
    funnel: Funnel
    avg_days_in_pipeline: float
    avg_time_per_stage: dict[str, float]
    reached_count: dict[str, int] = Field(
        description="Per-status counts; persisted as their total",
    )
    title: str | None = Field(None, max_length=300)
    summary: str | None = None
    priorities: list | dict | None = None
    save: bool = True


class CoachSnapshotRequest(BaseModel):
    """Compute insights over the last ``range_days`` on the server and store them."""

    range_days: Literal[7, 30]
    title: str | None = Field(None, max_length=300)
    summary: str | None = None


class CoachReportSaved(BaseModel):
    ok: bool = True
    saved_id: int | None


class CoachReportOut(BaseModel):
    model_config = _ORM_CONFIG
    id: int
    range_days: int
    total_applications: int
    by_status: dict
    daily_created: list | dict
    funnel: dict
    avg_days_in_pipeline: float
    avg_time_per_stage: dict
    reached_count: int
    title: str | None
    summary: str | None
    priorities: list | dict | None
    created_at: datetime


class CoachHistoryRow(BaseModel):
    model_config = _ORM_CONFIG
    id: int
    range_days: int
    total_applications: int
    avg_days_in_pipeline: float
    reached_count: int
    title: str | None
    created_at: datetime


class PctDeltas(BaseModel):
    total_applications: float | None
    avg_days_in_pipeline: float | None
    reached_count: float | None


class MetricDeltas(BaseModel):
    total_applications: float | None = None
    avg_days_in_pipeline: float | None = None
    reached_count: float | None = None
    pct: PctDeltas | None = None


class ActionCard(BaseModel):
    title: str
    body: str
    priority: Severity


class CoachCompareOut(BaseModel):
    latest7: CoachReportOut | None
    latest30: CoachReportOut | None
    delta: MetricDeltas
    action_cards: list[ActionCard]


# ── Text generation ────────────────────────────────────────────────────
class GenerateRequest(BaseModel):
    application_id: int
    save: bool = False


class SummaryOut(BaseModel):
    application_id: int
    summary: str
    saved: bool


class FollowupOut(BaseModel):
    application_id: int
    subject: str
    body: str
    saved: bool


class ReviewSections(BaseModel):
    strengths: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    recruiter_summary: str = ""
    tailored_pitch: str = ""


class ReviewOut(BaseModel):
    application: ApplicationOut
    review_text: str | None
    sections: ReviewSections | None
