from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from dependency_age.core.cache.ports.metadata_cache import CacheStats, MetadataCache


class FakeMetadataCache(MetadataCache):
    """In-memory cache without expiry; records lookups and writes."""

    def __init__(
        self, entries: Mapping[tuple[str, str], Mapping[str, Any]] | None = None
    ) -> None:
        self.entries: dict[tuple[str, str], dict[str, Any]] = {
            key: dict(value) for key, value in (entries or {}).items()
        }
        self.get_calls: list[tuple[str, str, int | None]] = []
        self.put_calls: list[tuple[str, str]] = []

    async def get(
        self, name: str, version: str, *, ttl: int | None = None
    ) -> dict[str, Any] | None:
        self.get_calls.append((name, version, ttl))
        entry = self.entries.get((name, version))
        return dict(entry) if entry is not None else None

    async def put(self, name: str, version: str, data: Mapping[str, Any]) -> None:
        self.put_calls.append((name, version))
        self.entries[(name, version)] = dict(data)

    async def is_valid(self) -> bool:
        return bool(self.entries)

    async def clear(self) -> None:
        self.entries.clear()

    async def stats(self) -> CacheStats:
        return CacheStats(
            exists=bool(self.entries),
            size=0,
            packages=len({name for name, _ in self.entries}),
            entries=len(self.entries),
        )
