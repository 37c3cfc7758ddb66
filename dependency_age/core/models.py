from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum

from dependency_age.core.utils import utc_now


class ReleaseType(StrEnum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


@dataclass(frozen=True, slots=True)
class ReleaseEntry:
    version: str
    date: datetime
    type: ReleaseType


@dataclass(frozen=True, slots=True)
class Package:
    """An installed dependency.

    Values are immutable: every ``with_*`` method returns a new ``Package`` so
    concurrent enrichment never shares mutable state.
    """

    name: str
    version: str
    is_dev: bool = False
    release_date: datetime | None = None
    latest_version: str | None = None
    latest_release_date: datetime | None = None
    release_history: tuple[ReleaseEntry, ...] = ()

    def with_release_date(self, release_date: datetime) -> Package:
        return replace(self, release_date=release_date)

    def with_latest_version(
        self, latest_version: str, latest_release_date: datetime | None
    ) -> Package:
        return replace(
            self,
            latest_version=latest_version,
            latest_release_date=latest_release_date,
        )

    def with_release_history(self, history: tuple[ReleaseEntry, ...]) -> Package:
        return replace(self, release_history=tuple(history))

    @property
    def is_production(self) -> bool:
        return not self.is_dev

    def age_in_days(self, reference_date: datetime | None = None) -> int | None:
        if self.release_date is None:
            return None
        reference = reference_date or utc_now()
        return abs((reference - self.release_date).days)
