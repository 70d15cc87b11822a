from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")

_STATUS_CHECK = "IN ('APPLIED', 'INTERVIEW', 'OFFER', 'REJECTED')"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="APPLIED")
    order: Mapped[int] = mapped_column("order", Integer, nullable=False, default=0)
    location: Mapped[str | None] = mapped_column(Text)
    job_url: Mapped[str | None] = mapped_column(Text)
    ai_summary: Mapped[str | None] = mapped_column(Text)
    follow_up_email_subject: Mapped[str | None] = mapped_column(Text)
    follow_up_email_body: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(f"status {_STATUS_CHECK}", name="ck_applications_status"),
        CheckConstraint('"order" >= 0', name="ck_applications_order_non_negative"),
        Index("ix_applications_status_order", "status", "order"),
    )


class ApplicationEvent(Base):
    __tablename__ = "application_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)
    from_status: Mapped[str | None] = mapped_column(Text)
    to_status: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        CheckConstraint("type IN ('CREATED', 'STATUS_CHANGE')", name="ck_application_events_type"),
        Index("ix_application_events_app_created", "application_id", "created_at"),
    )


class CoachReport(Base):
    __tablename__ = "coach_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    range_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_applications: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    by_status: Mapped[dict] = mapped_column(JsonType, nullable=False)
    daily_created: Mapped[list] = mapped_column(JsonType, nullable=False)
    funnel: Mapped[dict] = mapped_column(JsonType, nullable=False)
    avg_days_in_pipeline: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_time_per_stage: Mapped[dict] = mapped_column(JsonType, nullable=False)
    reached_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    title: Mapped[str | None] = mapped_column(Text)
    summary: Mapped[str | None] = mapped_column(Text)
    priorities: Mapped[list | dict | None] = mapped_column(JsonType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        CheckConstraint("range_days IN (7, 30)", name="ck_coach_reports_range_days"),
        Index("ix_coach_reports_range_created", "range_days", "created_at"),
    )
