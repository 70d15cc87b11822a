"""Pipeline analytics: stage timing, funnel metrics and coaching tips.

Everything here is a pure function over already-fetched rows and a
reference instant ``now``. Nothing touches the database; the insights route
and the coach report service fetch snapshots and hand them in.

Time in stage is reconstructed from the append-only event log: each
application's CREATED event fixes where it entered the pipeline, every
STATUS_CHANGE closes the previous stage, and the open stage runs until
``now``. A status visited twice contributes both durations but counts once
towards its reached total.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Sequence

from jobtracker.schemas.pydantic import (
    DailyCount,
    Funnel,
    MetricDeltas,
    PctDeltas,
    PipelineInsights,
    Tip,
)
from jobtracker.status import STATUSES, ApplicationStatus, EventType, is_status
from jobtracker.utils import as_utc, days_between


@dataclass(frozen=True)
class AppSnapshot:
    id: int
    status: str
    created_at: datetime


@dataclass(frozen=True)
class EventSnapshot:
    application_id: int
    type: str
    to_status: str | None
    created_at: datetime
    from_status: str | None = None


@dataclass(frozen=True)
class StageAccumulator:
    """Running totals threaded through the per-application fold."""

    duration_sum: Mapping[ApplicationStatus, float] = field(
        default_factory=lambda: {s: 0.0 for s in STATUSES}
    )
    reached: Mapping[ApplicationStatus, frozenset[int]] = field(
        default_factory=lambda: {s: frozenset() for s in STATUSES}
    )

    def add_duration(self, status: ApplicationStatus, days: float) -> StageAccumulator:
        sums = dict(self.duration_sum)
        sums[status] = sums[status] + days
        return replace(self, duration_sum=sums)

    def mark_reached(self, status: ApplicationStatus, app_id: int) -> StageAccumulator:
        if app_id in self.reached[status]:
            return self
        reached = dict(self.reached)
        reached[status] = reached[status] | {app_id}
        return replace(self, reached=reached)


@dataclass(frozen=True)
class TipThresholds:
    bottleneck_high_days: float = 7.0
    bottleneck_medium_days: float = 3.0
    stale_high_days: float = 21.0
    stale_medium_days: float = 10.0
    min_applied_for_funnel_tip: int = 5
    min_interviews_for_funnel_tip: int = 3
    applied_to_interview_floor: float = 0.20
    interview_to_offer_floor: float = 0.25
    min_applications_for_age_tip: int = 5

    @classmethod
    def from_settings(cls, settings: Any) -> TipThresholds:
        return cls(
            bottleneck_high_days=settings.bottleneck_high_days,
            bottleneck_medium_days=settings.bottleneck_medium_days,
            stale_high_days=settings.stale_high_days,
            stale_medium_days=settings.stale_medium_days,
            min_applied_for_funnel_tip=settings.min_applied_for_funnel_tip,
            min_interviews_for_funnel_tip=settings.min_interviews_for_funnel_tip,
            applied_to_interview_floor=settings.applied_to_interview_floor,
            interview_to_offer_floor=settings.interview_to_offer_floor,
            min_applications_for_age_tip=settings.min_applications_for_age_tip,
        )


# ── Time in stage ─────────────────────────────────────────────────────


def group_events(events: Iterable[EventSnapshot]) -> dict[int, list[EventSnapshot]]:
    """Bucket events per application, oldest first (ties keep input order)."""
    grouped: dict[int, list[EventSnapshot]] = defaultdict(list)
    for event in events:
        grouped[event.application_id].append(event)
    return {
        app_id: sorted(app_events, key=lambda e: as_utc(e.created_at))
        for app_id, app_events in grouped.items()
    }


def _starting_point(
    app: AppSnapshot, events: Sequence[EventSnapshot]
) -> tuple[ApplicationStatus, datetime]:
    created = next((e for e in events if e.type == EventType.CREATED.value), None)
    if created is not None and is_status(created.to_status):
        return ApplicationStatus(created.to_status), created.created_at
    status = ApplicationStatus(app.status) if is_status(app.status) else ApplicationStatus.APPLIED
    return status, app.created_at


def reconstruct_stage_time(
    app: AppSnapshot,
    events: Sequence[EventSnapshot],
    now: datetime,
    acc: StageAccumulator,
) -> StageAccumulator:
    """Fold one application's lifecycle into *acc* and return the new accumulator.

    *events* must be this application's events in time order.
    """
    current_status, current_time = _starting_point(app, events)
    acc = acc.mark_reached(current_status, app.id)

    for event in events:
        if event.type != EventType.STATUS_CHANGE.value or not is_status(event.to_status):
            continue
        acc = acc.add_duration(current_status, days_between(current_time, event.created_at))
        current_status = ApplicationStatus(event.to_status)
        current_time = event.created_at
        acc = acc.mark_reached(current_status, app.id)

    # Time in the stage the application occupies now
    return acc.add_duration(current_status, days_between(current_time, now))


def time_in_stage(
    apps: Iterable[AppSnapshot],
    events: Iterable[EventSnapshot],
    now: datetime,
) -> StageAccumulator:
    by_app = group_events(events)
    acc = StageAccumulator()
    for app in apps:
        acc = reconstruct_stage_time(app, by_app.get(app.id, []), now, acc)
    return acc


def reached_count(acc: StageAccumulator) -> dict[ApplicationStatus, int]:
    return {s: len(acc.reached[s]) for s in STATUSES}


def avg_time_per_stage(acc: StageAccumulator) -> dict[ApplicationStatus, float]:
    """Summed days per stage divided by the number of applications that reached it."""
    counts = reached_count(acc)
    return {
        s: round(acc.duration_sum[s] / counts[s], 1) if counts[s] else 0.0
        for s in STATUSES
    }


# ── Snapshot metrics ──────────────────────────────────────────────────


def status_histogram(apps: Iterable[AppSnapshot]) -> dict[ApplicationStatus, int]:
    counts = {s: 0 for s in STATUSES}
    for app in apps:
        if is_status(app.status):
            counts[ApplicationStatus(app.status)] += 1
    return counts


def avg_days_in_pipeline(apps: Sequence[AppSnapshot], now: datetime) -> float:
    """Mean application age since creation, whatever the current status."""
    if not apps:
        return 0.0
    return sum(days_between(app.created_at, now) for app in apps) / len(apps)


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def funnel(by_status: Mapping[ApplicationStatus, int]) -> Funnel:
    applied = by_status[ApplicationStatus.APPLIED]
    interview = by_status[ApplicationStatus.INTERVIEW]
    offer = by_status[ApplicationStatus.OFFER]
    rejected = by_status[ApplicationStatus.REJECTED]
    return Funnel(
        applied_to_interview=_ratio(interview, applied),
        interview_to_offer=_ratio(offer, interview),
        offer_to_accepted=_ratio(offer - rejected, offer),
    )


def daily_created(
    apps: Iterable[AppSnapshot], now: datetime, days: int = 30
) -> list[DailyCount]:
    """Applications created on each of the last *days* UTC dates, zero-filled."""
    today = as_utc(now).date()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    counts = {d: 0 for d in window}
    for app in apps:
        created = as_utc(app.created_at).date()
        if created in counts:
            counts[created] += 1
    return [DailyCount(date=d.isoformat(), count=counts[d]) for d in window]


# ── Coaching tips ─────────────────────────────────────────────────────


def _pct(ratio: float) -> int:
    if not math.isfinite(ratio):
        return 0
    return math.floor(ratio * 100 + 0.5)


def _days(value: float) -> str:
    return f"{value:.1f}".rstrip("0").rstrip(".")


def _bottleneck_tip(
    avg_stage: Mapping[ApplicationStatus, float],
    reached: Mapping[ApplicationStatus, int],
    thresholds: TipThresholds,
) -> Tip:
    candidates = [s for s in STATUSES if reached[s] > 0]
    if not candidates:
        return Tip(
            title="Enable time-per-stage tracking",
            body=(
                "No stage timing data yet. Make sure lifecycle events are recorded "
                "when applications are created and moved on the board."
            ),
            severity="high",
        )

    # First stage in pipeline order wins ties
    stage = max(candidates, key=lambda s: avg_stage[s])
    days = avg_stage[stage]
    name = stage.value
    metric = f"{_days(days)}d in {name}"
    if days >= thresholds.bottleneck_high_days:
        return Tip(
            title=f"Bottleneck: {name} stage is slow",
            body=(
                f"On average, applications spend {_days(days)} days in {name}. Consider "
                "tightening your next-step cadence (follow-ups, scheduling, or batching outreach)."
            ),
            severity="high",
            metric=metric,
        )
    if days >= thresholds.bottleneck_medium_days:
        return Tip(
            title=f"Pipeline drag: {name} is your slowest stage",
            body=(
                f"Apps spend about {_days(days)} days in {name}. If you want faster "
                "throughput, focus on reducing wait time in this stage."
            ),
            severity="medium",
            metric=metric,
        )
    return Tip(
        title="Healthy pacing",
        body=(
            f"Your slowest stage is {name} at ~{_days(days)} days. That's fairly quick, "
            "keep the cadence consistent."
        ),
        severity="low",
        metric=metric,
    )


def _funnel_tip(
    by_status: Mapping[ApplicationStatus, int],
    rates: Funnel,
    thresholds: TipThresholds,
) -> Tip | None:
    a2i = rates.applied_to_interview
    i2o = rates.interview_to_offer
    enough_applied = by_status[ApplicationStatus.APPLIED] >= thresholds.min_applied_for_funnel_tip
    enough_interviews = (
        by_status[ApplicationStatus.INTERVIEW] >= thresholds.min_interviews_for_funnel_tip
    )

    if enough_applied and a2i < thresholds.applied_to_interview_floor:
        return Tip(
            title="Low Applied → Interview conversion",
            body=(
                f"Only {_pct(a2i)}% of applied items are reaching interview. Consider targeting "
                "better-fit roles, refining your resume per role type, or increasing outreach quality."
            ),
            severity="high",
            metric=f"{_pct(a2i)}% Applied→Interview",
        )
    if enough_interviews and i2o < thresholds.interview_to_offer_floor:
        return Tip(
            title="Interview → Offer is your biggest lever",
            body=(
                f"Only {_pct(i2o)}% of interviews convert to offers. Focus on interview reps, "
                "story prep, and role-aligned project examples."
            ),
            severity="medium",
            metric=f"{_pct(i2o)}% Interview→Offer",
        )
    if enough_interviews:
        return Tip(
            title="Interview performance looks promising",
            body=(
                f"Your Interview → Offer rate is {_pct(i2o)}%. Keep repeating what works: "
                "prep patterns, system design reps, and strong closing questions."
            ),
            severity="low",
            metric=f"{_pct(i2o)}% Interview→Offer",
        )
    return None


def _age_tip(total: int, avg_age: float, thresholds: TipThresholds) -> Tip | None:
    if total < thresholds.min_applications_for_age_tip:
        return None
    age = f"{avg_age:.1f}"
    metric = f"{age} avg days"
    if avg_age >= thresholds.stale_high_days:
        return Tip(
            title="Your pipeline may be stale",
            body=(
                f"Average application age is {age} days. Consider closing out older "
                "applications and refreshing with new ones weekly."
            ),
            severity="high",
            metric=metric,
        )
    if avg_age >= thresholds.stale_medium_days:
        return Tip(
            title="Moderate pipeline age",
            body=(
                f"Average age is {age} days. Add a follow-up routine (e.g., 2/5/10 day "
                "check-ins) to reduce stagnation."
            ),
            severity="medium",
            metric=metric,
        )
    return Tip(
        title="Fresh pipeline",
        body=f"Average age is {age} days, your tracking is up to date. Keep feeding the top of funnel.",
        severity="low",
        metric=metric,
    )


def generate_tips(
    *,
    total_applications: int,
    by_status: Mapping[ApplicationStatus, int],
    rates: Funnel,
    avg_age: float,
    avg_stage: Mapping[ApplicationStatus, float],
    reached: Mapping[ApplicationStatus, int],
    thresholds: TipThresholds | None = None,
) -> list[Tip]:
    """Rule-based coaching tips, in priority order: bottleneck, funnel, age."""
    thresholds = thresholds or TipThresholds()
    tips = [_bottleneck_tip(avg_stage, reached, thresholds)]
    for tip in (
        _funnel_tip(by_status, rates, thresholds),
        _age_tip(total_applications, avg_age, thresholds),
    ):
        if tip is not None:
            tips.append(tip)
    return tips


def compute_insights(
    apps: Sequence[AppSnapshot],
    events: Iterable[EventSnapshot],
    now: datetime,
    *,
    window_days: int = 30,
    thresholds: TipThresholds | None = None,
) -> PipelineInsights:
    """Full metrics snapshot for the dashboard and coach reports."""
    by_status = status_histogram(apps)
    avg_age = avg_days_in_pipeline(apps, now)
    rates = funnel(by_status)
    acc = time_in_stage(apps, events, now)
    avg_stage = avg_time_per_stage(acc)
    reached = reached_count(acc)

    tips = generate_tips(
        total_applications=len(apps),
        by_status=by_status,
        rates=rates,
        avg_age=avg_age,
        avg_stage=avg_stage,
        reached=reached,
        thresholds=thresholds,
    )
    return PipelineInsights(
        total_applications=len(apps),
        by_status={s.value: n for s, n in by_status.items()},
        avg_days_in_pipeline=round(avg_age, 1),
        funnel=rates,
        daily_created=daily_created(apps, now, window_days),
        avg_time_per_stage={s.value: d for s, d in avg_stage.items()},
        reached_count={s.value: n for s, n in reached.items()},
        tips=tips,
    )


# ── Snapshot comparison ───────────────────────────────────────────────


def _finite(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def pct_delta(current: Any, previous: Any) -> float | None:
    """Percentage change from *previous* to *current*.

    None when there is no meaningful percentage (previous is zero, missing
    or not finite). Never raises and never returns infinity.
    """
    prev = _finite(previous)
    cur = _finite(current)
    if prev is None or prev == 0 or cur is None:
        return None
    return ((cur - prev) / prev) * 100


def _abs_delta(current: Any, previous: Any) -> float | None:
    cur = _finite(current)
    prev = _finite(previous)
    if cur is None or prev is None:
        return None
    return cur - prev


_COMPARED_METRICS = ("total_applications", "avg_days_in_pipeline", "reached_count")


def compare_snapshots(current: Any | None, previous: Any | None) -> MetricDeltas:
    """Absolute and percentage deltas for the numeric fields of two snapshots.

    Snapshots are any objects exposing the compared attributes (ORM rows or
    response models). Every delta is None when either snapshot is missing.
    """
    if current is None or previous is None:
        return MetricDeltas()

    pairs = {
        name: (getattr(current, name, None), getattr(previous, name, None))
        for name in _COMPARED_METRICS
    }
    return MetricDeltas(
        **{name: _abs_delta(cur, prev) for name, (cur, prev) in pairs.items()},
        pct=PctDeltas(**{name: pct_delta(cur, prev) for name, (cur, prev) in pairs.items()}),
    )
