from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from dependency_age.core.config import ConfigurationError
from dependency_age.core.models import Package
from dependency_age.core.rating import (
    AgeCategory,
    age_category,
    age_reduction,
    age_statistics,
    format_age,
    rate_package,
    rating_summary,
    thresholds_in_days,
)

REFERENCE = datetime(2024, 1, 1, tzinfo=UTC)


def _released(name: str, days_ago: int, latest_days_ago: int | None = None) -> Package:
    package = Package(name, "1.0.0").with_release_date(REFERENCE - timedelta(days=days_ago))
    if latest_days_ago is None:
        return package
    return package.with_latest_version(
        "2.0.0", REFERENCE - timedelta(days=latest_days_ago)
    )


def test_converts_year_thresholds_to_days() -> None:
    assert thresholds_in_days() == {"current": 183, "medium": 365, "old": 730}


def test_keeps_thresholds_already_expressed_in_days() -> None:
    assert thresholds_in_days({"current": 30, "medium": 90, "old": 180}) == {
        "current": 30,
        "medium": 90,
        "old": 180,
    }


@pytest.mark.parametrize("thresholds", [{"ancient": 5}, {"current": 0}, {"medium": -1}])
def test_rejects_invalid_thresholds(thresholds: dict[str, float]) -> None:
    with pytest.raises(ConfigurationError):
        thresholds_in_days(thresholds)


@pytest.mark.parametrize(
    ("age_days", "expected"),
    [
        (0, AgeCategory.CURRENT),
        (183, AgeCategory.CURRENT),
        (184, AgeCategory.MEDIUM),
        (365, AgeCategory.MEDIUM),
        (366, AgeCategory.OLD),
        (5000, AgeCategory.OLD),
    ],
)
def test_categorises_ages_against_default_thresholds(
    age_days: int, expected: AgeCategory
) -> None:
    assert age_category(age_days) is expected


@pytest.mark.parametrize(
    ("age_days", "expected"),
    [
        (0, "today"),
        (1, "1 day"),
        (10, "10 days"),
        (30, "4 weeks"),
        (60, "2 months"),
        (400, "1.1 years"),
        (731, "2 years"),
        (1000, "2.7 years"),
    ],
)
def test_formats_ages_for_humans(age_days: int, expected: str) -> None:
    assert format_age(age_days) == expected


def test_rates_packages_without_a_release_date_as_unknown() -> None:
    rating = rate_package(Package("vendor/pkg", "1.0.0"), reference_date=REFERENCE)

    assert rating.category is AgeCategory.UNKNOWN
    assert rating.age_days is None
    assert rating.description == "Unknown"


def test_rates_a_released_package() -> None:
    rating = rate_package(_released("vendor/pkg", 400), reference_date=REFERENCE)

    assert rating.category is AgeCategory.OLD
    assert rating.age_days == 400
    assert rating.emoji == "🔴"
    assert rating.description == "Critical"


def test_computes_the_age_reduction_of_updating() -> None:
    assert age_reduction(_released("vendor/pkg", 730, 184), REFERENCE) == 546
    assert age_reduction(_released("vendor/pkg", 730), REFERENCE) is None


def test_summarises_a_dependency_set() -> None:
    packages = [
        _released("vendor/current", 10),
        _released("vendor/medium", 200),
        _released("vendor/old", 400),
        Package("vendor/unknown", "1.0.0"),
    ]

    summary = rating_summary(packages, reference_date=REFERENCE)

    assert summary.total_packages == 4
    assert summary.distribution == {
        AgeCategory.CURRENT: 1,
        AgeCategory.MEDIUM: 1,
        AgeCategory.OLD: 1,
        AgeCategory.UNKNOWN: 1,
    }
    assert summary.percentages[AgeCategory.CURRENT] == 33.3
    assert summary.percentages[AgeCategory.UNKNOWN] == 25.0
    assert summary.health_score == 50.0
    assert summary.has_critical is True
    assert summary.overall_rating == "needs attention"


def test_summarises_a_mostly_current_set() -> None:
    packages = [_released(f"vendor/pkg-{index}", 5) for index in range(3)]

    summary = rating_summary(packages, reference_date=REFERENCE)

    assert summary.dominant_category is AgeCategory.CURRENT
    assert summary.health_score == 100.0
    assert summary.has_critical is False
    assert summary.overall_rating == "mostly current"


def test_summary_of_unknown_packages_only() -> None:
    summary = rating_summary([Package("vendor/pkg", "1.0.0")], reference_date=REFERENCE)

    assert summary.dominant_category is AgeCategory.UNKNOWN
    assert summary.percentages[AgeCategory.UNKNOWN] == 100.0
    assert summary.health_score == 0.0


def test_computes_age_statistics() -> None:
    packages = [
        _released("vendor/a", 10),
        _released("vendor/b", 200, 20),
        _released("vendor/c", 400, 100),
        Package("vendor/unknown", "1.0.0"),
    ]

    stats = age_statistics(packages, reference_date=REFERENCE)

    assert stats.count == 3
    assert stats.average_age_days == pytest.approx(610 / 3)
    assert stats.median_age_days == 200
    assert stats.oldest_age_days == 400
    assert stats.newest_age_days == 10
    assert stats.potential_reduction_days == pytest.approx(240.0)
    assert stats.total_reduction_days == 480


def test_age_statistics_of_nothing() -> None:
    assert age_statistics([], reference_date=REFERENCE).count == 0
