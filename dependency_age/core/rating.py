"""Age calculation and staleness rating for enriched packages."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
import statistics

from dependency_age.core.config import DEFAULT_THRESHOLDS, ConfigurationError
from dependency_age.core.models import Package
from dependency_age.core.utils import utc_now

DAYS_PER_YEAR = 365.25
DAYS_PER_MONTH = 30.44
# Threshold values below this are read as years and converted to days.
YEAR_THRESHOLD_CUTOFF = 10


class AgeCategory(StrEnum):
    CURRENT = "current"
    MEDIUM = "medium"
    OLD = "old"
    UNKNOWN = "unknown"


CATEGORY_EMOJI: dict[AgeCategory, str] = {
    AgeCategory.CURRENT: "🟢",
    AgeCategory.MEDIUM: "🟡",
    AgeCategory.OLD: "🔴",
    AgeCategory.UNKNOWN: "⚪",
}

CATEGORY_DESCRIPTION: dict[AgeCategory, str] = {
    AgeCategory.CURRENT: "Current",
    AgeCategory.MEDIUM: "Outdated",
    AgeCategory.OLD: "Critical",
    AgeCategory.UNKNOWN: "Unknown",
}


@dataclass(frozen=True, slots=True)
class PackageRating:
    category: AgeCategory
    age_days: int | None
    age_formatted: str

    @property
    def emoji(self) -> str:
        return CATEGORY_EMOJI[self.category]

    @property
    def description(self) -> str:
        return CATEGORY_DESCRIPTION[self.category]


@dataclass(frozen=True, slots=True)
class RatingSummary:
    total_packages: int
    distribution: dict[AgeCategory, int]
    percentages: dict[AgeCategory, float]
    dominant_category: AgeCategory
    health_score: float
    has_critical: bool
    overall_rating: str


@dataclass(frozen=True, slots=True)
class AgeStatistics:
    count: int
    average_age_days: float | None = None
    median_age_days: float | None = None
    oldest_age_days: int | None = None
    newest_age_days: int | None = None
    potential_reduction_days: float | None = None
    total_reduction_days: int | None = None


def age_in_days(since: datetime, reference_date: datetime | None = None) -> int:
    reference = reference_date or utc_now()
    return abs((reference - since).days)


def format_age(age_days: int) -> str:
    if age_days == 0:
        return "today"
    if age_days == 1:
        return "1 day"
    if age_days < 28:
        return f"{age_days} days"
    if age_days < 56:
        weeks = round(age_days / 7)
        return "1 week" if weeks == 1 else f"{weeks} weeks"
    if age_days < 365:
        months = round(age_days / DAYS_PER_MONTH)
        return "1 month" if months == 1 else f"{months} months"

    years = age_days / DAYS_PER_YEAR
    if years >= 2 and abs(years - round(years)) < 0.05:
        return f"{round(years)} years"
    return f"{years:.1f} years"


def thresholds_in_days(thresholds: Mapping[str, float] | None = None) -> dict[str, int]:
    merged = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
    unknown = set(merged) - set(DEFAULT_THRESHOLDS)
    if unknown:
        raise ConfigurationError(f"Unknown threshold(s): {', '.join(sorted(unknown))}")

    converted: dict[str, int] = {}
    for key, value in merged.items():
        if value <= 0:
            raise ConfigurationError(f"Threshold '{key}' must be positive")
        converted[key] = (
            round(value * DAYS_PER_YEAR) if value < YEAR_THRESHOLD_CUTOFF else int(value)
        )
    return converted


def age_category(
    age_days: int, thresholds: Mapping[str, float] | None = None
) -> AgeCategory:
    limits = thresholds_in_days(thresholds)
    if age_days <= limits["current"]:
        return AgeCategory.CURRENT
    if age_days <= limits["medium"]:
        return AgeCategory.MEDIUM
    return AgeCategory.OLD


def rate_package(
    package: Package,
    thresholds: Mapping[str, float] | None = None,
    reference_date: datetime | None = None,
) -> PackageRating:
    if package.release_date is None:
        return PackageRating(
            category=AgeCategory.UNKNOWN, age_days=None, age_formatted="Unknown"
        )

    days = age_in_days(package.release_date, reference_date)
    return PackageRating(
        category=age_category(days, thresholds),
        age_days=days,
        age_formatted=format_age(days),
    )


def rate_packages(
    packages: Sequence[Package],
    thresholds: Mapping[str, float] | None = None,
    reference_date: datetime | None = None,
) -> dict[str, PackageRating]:
    return {
        package.name: rate_package(package, thresholds, reference_date)
        for package in packages
    }


def age_reduction(
    package: Package, reference_date: datetime | None = None
) -> int | None:
    """Days of age that updating to the latest release would shave off."""
    if package.release_date is None or package.latest_release_date is None:
        return None
    current = age_in_days(package.release_date, reference_date)
    latest = age_in_days(package.latest_release_date, reference_date)
    return max(0, current - latest)


def rating_summary(
    packages: Sequence[Package],
    thresholds: Mapping[str, float] | None = None,
    reference_date: datetime | None = None,
) -> RatingSummary:
    ratings = rate_packages(packages, thresholds, reference_date)
    counts = Counter(rating.category for rating in ratings.values())
    distribution = {category: counts.get(category, 0) for category in AgeCategory}
    total = sum(distribution.values())
    known = total - distribution[AgeCategory.UNKNOWN]

    if known == 0:
        percentages = {category: 0.0 for category in AgeCategory}
        percentages[AgeCategory.UNKNOWN] = 100.0 if total else 0.0
        return RatingSummary(
            total_packages=total,
            distribution=distribution,
            percentages=percentages,
            dominant_category=AgeCategory.UNKNOWN,
            health_score=0.0,
            has_critical=False,
            overall_rating=overall_rating(percentages),
        )

    percentages = {
        category: round(distribution[category] / known * 100, 1)
        for category in (AgeCategory.CURRENT, AgeCategory.MEDIUM, AgeCategory.OLD)
    }
    percentages[AgeCategory.UNKNOWN] = round(
        distribution[AgeCategory.UNKNOWN] / total * 100, 1
    )
    dominant = max(
        (AgeCategory.CURRENT, AgeCategory.MEDIUM, AgeCategory.OLD),
        key=lambda category: distribution[category],
    )
    health = (
        distribution[AgeCategory.CURRENT] + distribution[AgeCategory.MEDIUM] * 0.5
    ) / known * 100

    return RatingSummary(
        total_packages=total,
        distribution=distribution,
        percentages=percentages,
        dominant_category=dominant,
        health_score=round(health, 1),
        has_critical=distribution[AgeCategory.OLD] > 0,
        overall_rating=overall_rating(percentages),
    )


def overall_rating(percentages: Mapping[AgeCategory, float]) -> str:
    if percentages.get(AgeCategory.CURRENT, 0) >= 70:
        return "mostly current"
    if percentages.get(AgeCategory.OLD, 0) >= 30:
        return "needs attention"
    return "moderately current"


def age_statistics(
    packages: Sequence[Package], reference_date: datetime | None = None
) -> AgeStatistics:
    ages: list[int] = []
    reductions: list[int] = []
    for package in packages:
        if package.release_date is None:
            continue
        ages.append(age_in_days(package.release_date, reference_date))
        if (reduction := age_reduction(package, reference_date)) is not None:
            reductions.append(reduction)

    if not ages:
        return AgeStatistics(count=0)

    return AgeStatistics(
        count=len(ages),
        average_age_days=statistics.fmean(ages),
        median_age_days=statistics.median(ages),
        oldest_age_days=max(ages),
        newest_age_days=min(ages),
        potential_reduction_days=statistics.fmean(reductions) if reductions else None,
        total_reduction_days=sum(reductions) if reductions else None,
    )
