from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dependency_age.core.cache.ports.metadata_cache import (
    CACHE_FORMAT_VERSION,
    CacheStats,
    CacheStore,
    CacheWriteFailure,
)
from dependency_age.core.utils import format_datetime, parse_datetime, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TTL = 86400
MAX_CACHE_SIZE = 10 * 1024 * 1024


class CacheLoadStatus(StrEnum):
    LOADED = "loaded"
    MISSING = "missing"
    CORRUPTED = "corrupted"


@dataclass(frozen=True, slots=True)
class CacheLoadResult:
    store: CacheStore
    status: CacheLoadStatus


def empty_store(*, ttl: int, now: datetime) -> CacheStore:
    return CacheStore(version=CACHE_FORMAT_VERSION, created=now, ttl=ttl, packages={})


def parse_cache_store(content: str | None, *, ttl: int, now: datetime) -> CacheLoadResult:
    """Parse the raw cache file content.

    Never raises: a missing, blank, malformed or incompatible file yields an
    empty store tagged with the reason.
    """
    if content is None or not content.strip():
        return CacheLoadResult(empty_store(ttl=ttl, now=now), CacheLoadStatus.MISSING)

    try:
        store = CacheStore.model_validate_json(content)
    except ValidationError:
        return CacheLoadResult(
            empty_store(ttl=ttl, now=now), CacheLoadStatus.CORRUPTED
        )

    return CacheLoadResult(store, CacheLoadStatus.LOADED)


def is_expired(cached_at: object, *, ttl: int, now: datetime) -> bool:
    timestamp = parse_datetime(cached_at)
    if timestamp is None:
        return True
    return now - timestamp > timedelta(seconds=ttl)


class FileSystemMetadataCache:
    def __init__(
        self,
        cache_file: Path | str,
        *,
        ttl: int = DEFAULT_TTL,
        max_size_bytes: int = MAX_CACHE_SIZE,
        get_current_time: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cache_file = Path(cache_file)
        self._ttl = ttl
        self._max_size_bytes = max_size_bytes
        self._get_current_time = get_current_time
        self._store: CacheStore | None = None

    @property
    def cache_file(self) -> Path:
        return self._cache_file

    @property
    def ttl(self) -> int:
        return self._ttl

    async def load(self) -> CacheStore:
        if self._store is not None:
            return self._store

        try:
            content: str | None = await asyncio.to_thread(
                self._cache_file.read_text, encoding="utf-8"
            )
        except FileNotFoundError:
            content = None
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Could not read cache file %s: %s", self._cache_file, exc)
            content = ""

        result = parse_cache_store(
            content, ttl=self._ttl, now=self._get_current_time()
        )
        if result.status is CacheLoadStatus.CORRUPTED:
            logger.debug("Ignoring corrupted cache file %s", self._cache_file)

        self._store = result.store
        return self._store

    async def get(
        self, name: str, version: str, *, ttl: int | None = None
    ) -> dict[str, Any] | None:
        store = await self.load()
        entry = store.packages.get(name, {}).get(version)
        if not isinstance(entry, dict):
            return None

        effective_ttl = self._ttl if ttl is None else ttl
        if is_expired(
            entry.get("cached_at"), ttl=effective_ttl, now=self._get_current_time()
        ):
            return None

        return dict(entry)

    async def put(self, name: str, version: str, data: Mapping[str, Any]) -> None:
        store = await self.load()
        now = self._get_current_time()
        store.packages.setdefault(name, {})[version] = {
            **data,
            "cached_at": format_datetime(now),
        }
        store.ttl = self._ttl

        payload = self._serialize(store)
        if len(payload.encode("utf-8")) > self._max_size_bytes:
            removed = self._prune_expired(store, now=now)
            logger.debug("Cache exceeded size limit, pruned %d expired entries", removed)
            payload = self._serialize(store)

        await self._write(payload)

    async def is_valid(self) -> bool:
        if not await asyncio.to_thread(self._cache_file.exists):
            return False
        store = await self.load()
        return not is_expired(store.created, ttl=self._ttl, now=self._get_current_time())

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._cache_file.unlink, missing_ok=True)
        except OSError as exc:
            raise CacheWriteFailure(
                f"Failed to delete cache file {self._cache_file}: {exc}"
            ) from exc
        self._store = None

    async def stats(self) -> CacheStats:
        try:
            size = (await asyncio.to_thread(self._cache_file.stat)).st_size
        except FileNotFoundError:
            return CacheStats(exists=False, size=0, packages=0, entries=0)
        except OSError as exc:
            logger.debug("Could not stat cache file %s: %s", self._cache_file, exc)
            return CacheStats(exists=False, size=0, packages=0, entries=0)

        store = await self.load()
        return CacheStats(
            exists=True,
            size=size,
            packages=len(store.packages),
            entries=sum(len(versions) for versions in store.packages.values()),
            created=store.created,
            valid=await self.is_valid(),
        )

    def _prune_expired(self, store: CacheStore, *, now: datetime) -> int:
        removed = 0
        for name in list(store.packages):
            versions = store.packages[name]
            for version in list(versions):
                if is_expired(versions[version].get("cached_at"), ttl=store.ttl, now=now):
                    del versions[version]
                    removed += 1
            if not versions:
                del store.packages[name]
        return removed

    @staticmethod
    def _serialize(store: CacheStore) -> str:
        return json.dumps(store.model_dump(mode="json"), indent=4)

    async def _write(self, payload: str) -> None:
        try:
            await asyncio.to_thread(
                self._cache_file.parent.mkdir, parents=True, exist_ok=True
            )
            await asyncio.to_thread(
                self._cache_file.write_text, payload, encoding="utf-8"
            )
        except OSError as exc:
            raise CacheWriteFailure(
                f"Failed to write cache file {self._cache_file}: {exc}"
            ) from exc
