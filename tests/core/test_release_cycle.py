from __future__ import annotations

from datetime import UTC, datetime, timedelta

from dependency_age.core.models import Package, ReleaseEntry, ReleaseType
from dependency_age.core.release_cycle import (
    ReleasePattern,
    ReleaseTrend,
    analyze_release_cycle,
    format_cycle_rating,
)

REFERENCE = datetime(2024, 1, 1, tzinfo=UTC)


def _with_history(*intervals: int, last_release_days_ago: int = 5) -> Package:
    date = REFERENCE - timedelta(days=last_release_days_ago)
    history = [ReleaseEntry(f"1.{len(intervals)}.0", date, ReleaseType.MINOR)]
    for index, interval in enumerate(intervals):
        date -= timedelta(days=interval)
        history.append(
            ReleaseEntry(f"1.{len(intervals) - index - 1}.0", date, ReleaseType.MINOR)
        )
    return Package("vendor/pkg", "1.0.0").with_release_history(tuple(history))


def test_reports_unknown_without_history() -> None:
    cycle = analyze_release_cycle(Package("vendor/pkg", "1.0.0"), REFERENCE)

    assert cycle.pattern is ReleasePattern.UNKNOWN
    assert cycle.rating == 0
    assert cycle.last_release_age is None


def test_reports_a_single_release() -> None:
    cycle = analyze_release_cycle(_with_history(last_release_days_ago=40), REFERENCE)

    assert cycle.pattern is ReleasePattern.SINGLE_RELEASE
    assert cycle.rating == 1
    assert cycle.frequency_days is None
    assert cycle.last_release_age == 40


def test_detects_a_steady_active_project() -> None:
    cycle = analyze_release_cycle(_with_history(30, 30, 30, 30), REFERENCE)

    assert cycle.pattern is ReleasePattern.VERY_ACTIVE
    assert cycle.rating == 3
    assert cycle.frequency_days == 30
    assert cycle.trend is ReleaseTrend.STABLE
    assert cycle.last_release_age == 5
    assert cycle.description == "Very active development, consistent pace"


def test_detects_an_accelerating_project() -> None:
    cycle = analyze_release_cycle(_with_history(10, 10, 100, 100), REFERENCE)

    assert cycle.trend is ReleaseTrend.ACCELERATING
    assert cycle.pattern is ReleasePattern.VERY_ACTIVE


def test_detects_a_slowing_project() -> None:
    cycle = analyze_release_cycle(_with_history(300, 300, 100, 100), REFERENCE)

    assert cycle.pattern is ReleasePattern.MODERATE
    assert cycle.rating == 1
    assert cycle.trend is ReleaseTrend.SLOWING
    assert cycle.description == "Moderate development pace, slowing down"


def test_needs_three_intervals_for_a_trend() -> None:
    cycle = analyze_release_cycle(_with_history(120, 150), REFERENCE)

    assert cycle.pattern is ReleasePattern.ACTIVE
    assert cycle.trend is ReleaseTrend.UNKNOWN
    assert cycle.description == "Active development"


def test_detects_an_inactive_project() -> None:
    cycle = analyze_release_cycle(_with_history(1000, 900), REFERENCE)

    assert cycle.pattern is ReleasePattern.INACTIVE
    assert cycle.rating == 0


def test_formats_the_cycle_rating_as_dots() -> None:
    cycle = analyze_release_cycle(_with_history(120, 150), REFERENCE)

    assert format_cycle_rating(cycle) == "●●○"
