from __future__ import annotations

from collections.abc import Sequence

from dependency_age.core.registry.ports.registry_gateway import RegistryVersion
from dependency_age.core.versions import parse_version


def find_version(
    versions: Sequence[RegistryVersion], target: str
) -> RegistryVersion | None:
    for entry in versions:
        if entry.version == target:
            return entry
    return None


def resolve_latest_stable(
    versions: Sequence[RegistryVersion],
) -> RegistryVersion | None:
    """Highest stable version, or the first entry when nothing is stable.

    The fallback trusts the registry to list the most recent version first; the
    response order is not verified.
    """
    if not versions:
        return None

    stable = [
        (parsed, entry)
        for entry in versions
        if (parsed := parse_version(entry.version)).is_stable
    ]
    if not stable:
        return versions[0]

    return max(stable, key=lambda item: item[0].ordering_key)[1]
