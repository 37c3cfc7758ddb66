from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from dependency_age.core.models import Package
from dependency_age.core.rating import age_in_days


class ReleasePattern(StrEnum):
    UNKNOWN = "unknown"
    SINGLE_RELEASE = "single_release"
    VERY_ACTIVE = "very_active"
    ACTIVE = "active"
    MODERATE = "moderate"
    SLOW = "slow"
    INACTIVE = "inactive"


class ReleaseTrend(StrEnum):
    UNKNOWN = "unknown"
    ACCELERATING = "accelerating"
    SLOWING = "slowing"
    STABLE = "stable"


_PATTERN_DESCRIPTIONS: dict[ReleasePattern, str] = {
    ReleasePattern.VERY_ACTIVE: "Very active development",
    ReleasePattern.ACTIVE: "Active development",
    ReleasePattern.MODERATE: "Moderate development pace",
    ReleasePattern.SLOW: "Slow development pace",
    ReleasePattern.INACTIVE: "Inactive or abandoned",
}

_TREND_DESCRIPTIONS: dict[ReleaseTrend, str] = {
    ReleaseTrend.ACCELERATING: ", accelerating recently",
    ReleaseTrend.SLOWING: ", slowing down",
    ReleaseTrend.STABLE: ", consistent pace",
}


@dataclass(frozen=True, slots=True)
class ReleaseCycle:
    pattern: ReleasePattern
    rating: int
    frequency_days: int | None
    trend: ReleaseTrend
    last_release_age: int | None
    description: str


def analyze_release_cycle(
    package: Package, reference_date: datetime | None = None
) -> ReleaseCycle:
    history = package.release_history
    if not history:
        return ReleaseCycle(
            pattern=ReleasePattern.UNKNOWN,
            rating=0,
            frequency_days=None,
            trend=ReleaseTrend.UNKNOWN,
            last_release_age=None,
            description="Insufficient release history data",
        )

    last_release_age = age_in_days(history[0].date, reference_date)
    intervals = [
        abs((newer.date - older.date).days)
        for newer, older in zip(history, history[1:], strict=False)
    ]
    if not intervals:
        return ReleaseCycle(
            pattern=ReleasePattern.SINGLE_RELEASE,
            rating=1,
            frequency_days=None,
            trend=ReleaseTrend.UNKNOWN,
            last_release_age=last_release_age,
            description="Only single release found",
        )

    average = sum(intervals) / len(intervals)
    pattern = _categorize(average)
    trend = _detect_trend(intervals)
    return ReleaseCycle(
        pattern=pattern,
        rating=_cycle_rating(average),
        frequency_days=round(average),
        trend=trend,
        last_release_age=last_release_age,
        description=_PATTERN_DESCRIPTIONS[pattern] + _TREND_DESCRIPTIONS.get(trend, ""),
    )


def format_cycle_rating(cycle: ReleaseCycle) -> str:
    return "●" * cycle.rating + "○" * (3 - cycle.rating)


def _categorize(average_days: float) -> ReleasePattern:
    if average_days <= 60:
        return ReleasePattern.VERY_ACTIVE
    if average_days <= 180:
        return ReleasePattern.ACTIVE
    if average_days <= 365:
        return ReleasePattern.MODERATE
    if average_days <= 730:
        return ReleasePattern.SLOW
    return ReleasePattern.INACTIVE


def _cycle_rating(average_days: float) -> int:
    if average_days <= 60:
        return 3
    if average_days <= 180:
        return 2
    if average_days <= 365:
        return 1
    return 0


def _detect_trend(intervals: list[int]) -> ReleaseTrend:
    """Compare the newer half of the intervals against the older half."""
    if len(intervals) < 3:
        return ReleaseTrend.UNKNOWN

    half = len(intervals) // 2
    recent, older = intervals[:half], intervals[half:]
    recent_average = sum(recent) / len(recent)
    older_average = sum(older) / len(older)

    if recent_average < older_average * 0.7:
        return ReleaseTrend.ACCELERATING
    if recent_average > older_average * 1.5:
        return ReleaseTrend.SLOWING
    return ReleaseTrend.STABLE
