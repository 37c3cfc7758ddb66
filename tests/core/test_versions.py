from __future__ import annotations

import pytest

from dependency_age.core.models import ReleaseType
from dependency_age.core.versions import (
    classify_release,
    compare_versions,
    is_dev_version,
    is_stable,
    parse_version,
)


@pytest.mark.parametrize(
    ("version", "expected"),
    [
        ("dev-main", True),
        ("dev-feature/login", True),
        ("2.x-dev", True),
        ("1.0-dev", True),
        ("DEV-master", True),
        ("1.0.0", False),
        ("v2.3.4", False),
        ("1.0.0-beta1", False),
        ("developer-tools-1.0", False),
    ],
)
def test_recognises_development_branches(version: str, expected: bool) -> None:
    assert is_dev_version(version) is expected


@pytest.mark.parametrize(
    ("version", "stable"),
    [
        ("1.5.0", True),
        ("v3.0.0", True),
        ("2.0.0-beta", False),
        ("2.0.0-BETA2", False),
        ("1.0.0-alpha.1", False),
        ("1.0.0-RC1", False),
        ("4.0.0-snapshot", False),
        ("2.0.0-dev", False),
    ],
)
def test_classifies_pre_releases_as_unstable(version: str, stable: bool) -> None:
    assert parse_version(version).is_stable is stable
    assert is_stable(parse_version(version)) is stable


def test_extracts_numeric_components() -> None:
    parsed = parse_version("v2.14.1-beta3")

    assert parsed.raw == "v2.14.1-beta3"
    assert parsed.components == (2, 14, 1)
    assert parsed.markers == frozenset({"beta"})


@pytest.mark.parametrize(
    ("left", "right", "expected"),
    [
        ("1.10.0", "1.9.0", 1),
        ("1.9.0", "1.10.0", -1),
        ("v1.0.0", "1.0.0", 0),
        ("2.0.0-beta", "2.0.0", -1),
        ("dev-main", "0.0.1", -1),
    ],
)
def test_orders_versions_numerically(left: str, right: str, expected: int) -> None:
    assert compare_versions(left, right) == expected


def test_unparseable_versions_fall_back_to_their_numeric_prefix() -> None:
    parsed = parse_version("1.2.3-patched")

    assert parsed.ordering_key == parse_version("1.2.3").ordering_key


@pytest.mark.parametrize(
    ("version", "previous", "expected"),
    [
        ("2.0.0", "1.9.9", ReleaseType.MAJOR),
        ("1.2.0", "1.1.5", ReleaseType.MINOR),
        ("1.1.6", "1.1.5", ReleaseType.PATCH),
        ("1.1", "1.1.0", ReleaseType.PATCH),
        ("v1.0.0", None, ReleaseType.MAJOR),
    ],
)
def test_classifies_releases_against_their_predecessor(
    version: str, previous: str | None, expected: ReleaseType
) -> None:
    assert classify_release(version, previous) is expected
