"""Version string classification and ordering.

Composer version strings are looser than PEP 440 (``v1.2.3``, ``1.0.0-beta2``,
``dev-main``, ``2.x-dev``), so parsing never fails: strings that do not map to a
``packaging`` version sort below every parseable one.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from packaging.version import InvalidVersion, Version

from dependency_age.core.models import ReleaseType

UNSTABLE_MARKERS: tuple[str, ...] = ("dev", "alpha", "beta", "rc", "pre", "snapshot")

_LOWEST_VERSION = Version("0")
_NUMERIC_PREFIX = re.compile(r"^v?(\d+(?:\.\d+)*)", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ParsedVersion:
    raw: str
    components: tuple[int, ...]
    markers: frozenset[str]
    ordering_key: Version

    @property
    def is_stable(self) -> bool:
        return not self.markers


def parse_version(raw: str) -> ParsedVersion:
    lowered = raw.strip().lower()
    markers = frozenset(marker for marker in UNSTABLE_MARKERS if marker in lowered)

    components: tuple[int, ...] = ()
    if match := _NUMERIC_PREFIX.match(lowered):
        components = tuple(int(part) for part in match.group(1).split("."))

    return ParsedVersion(
        raw=raw,
        components=components,
        markers=markers,
        ordering_key=_ordering_key(lowered, components),
    )


def _ordering_key(lowered: str, components: tuple[int, ...]) -> Version:
    try:
        return Version(lowered)
    except InvalidVersion:
        pass
    if components:
        return Version(".".join(str(part) for part in components))
    return _LOWEST_VERSION


def is_stable(version: ParsedVersion) -> bool:
    return version.is_stable


def is_dev_version(raw: str) -> bool:
    """Branch aliases like ``dev-main`` or ``2.x-dev`` have no fixed release date."""
    lowered = raw.strip().lower()
    return lowered.startswith("dev-") or lowered.endswith("-dev") or ".x-dev" in lowered


def compare_versions(left: str, right: str) -> int:
    left_key = parse_version(left).ordering_key
    right_key = parse_version(right).ordering_key
    if left_key < right_key:
        return -1
    if left_key > right_key:
        return 1
    return 0


def classify_release(version: str, previous_version: str | None) -> ReleaseType:
    if previous_version is None:
        return ReleaseType.MAJOR

    current = parse_version(version).components
    previous = parse_version(previous_version).components

    if _component(current, 0) != _component(previous, 0):
        return ReleaseType.MAJOR
    if _component(current, 1) != _component(previous, 1):
        return ReleaseType.MINOR
    return ReleaseType.PATCH


def _component(components: tuple[int, ...], index: int) -> int:
    return components[index] if index < len(components) else 0
