from __future__ import annotations

import calendar
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from dependency_age.core.models import ReleaseEntry, ReleaseType
from dependency_age.core.registry.ports.registry_gateway import RegistryVersion
from dependency_age.core.utils import format_datetime
from dependency_age.core.versions import classify_release, parse_version

RELEASE_HISTORY_KEY_SUFFIX = "#release-history"


class _CachedRelease(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    date: datetime
    type: ReleaseType


class _CachedReleaseHistory(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    releases: list[_CachedRelease]


def release_history_cache_key(name: str, months: int) -> tuple[str, str]:
    return f"{name}{RELEASE_HISTORY_KEY_SUFFIX}", f"{months}m"


def months_before(reference: datetime, months: int) -> datetime:
    month_index = reference.year * 12 + (reference.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(reference.day, calendar.monthrange(year, month)[1])
    return reference.replace(year=year, month=month, day=day)


def extract_release_history(
    versions: Sequence[RegistryVersion], *, months: int, reference_date: datetime
) -> tuple[ReleaseEntry, ...]:
    """Stable releases from the ``months`` before ``reference_date``, newest first."""
    cutoff = months_before(reference_date, months)
    in_window = sorted(
        (
            entry
            for entry in versions
            if entry.time is not None
            and cutoff <= entry.time <= reference_date
            and parse_version(entry.version).is_stable
        ),
        key=lambda entry: entry.time,
        reverse=True,
    )

    history: list[ReleaseEntry] = []
    for index, entry in enumerate(in_window):
        previous = in_window[index + 1].version if index + 1 < len(in_window) else None
        history.append(
            ReleaseEntry(
                version=entry.version,
                date=entry.time,
                type=classify_release(entry.version, previous),
            )
        )
    return tuple(history)


def serialize_release_history(history: Sequence[ReleaseEntry]) -> dict[str, Any]:
    return {
        "releases": [
            {
                "version": entry.version,
                "date": format_datetime(entry.date),
                "type": str(entry.type),
            }
            for entry in history
        ]
    }


def deserialize_release_history(data: dict[str, Any]) -> tuple[ReleaseEntry, ...] | None:
    try:
        cached = _CachedReleaseHistory.model_validate(data)
    except ValidationError:
        return None
    return tuple(
        ReleaseEntry(version=release.version, date=release.date, type=release.type)
        for release in cached.releases
    )
