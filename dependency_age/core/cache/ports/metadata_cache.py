from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, field_validator

from dependency_age.core.utils import parse_datetime

CACHE_FORMAT_VERSION = "1.0"


class CacheEntry(BaseModel):
    """Typed view over a cached package/version record."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    release_date: datetime
    latest_version: str | None = None
    latest_release_date: datetime | None = None
    cached_at: datetime | None = None

    @field_validator("release_date", "latest_release_date", "cached_at", mode="before")
    @classmethod
    def _normalize_datetime(cls, value: object) -> object:
        return parse_datetime(value) or value


class CacheStore(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: str
    created: datetime
    ttl: int
    packages: dict[str, dict[str, dict[str, Any]]]

    @field_validator("version")
    @classmethod
    def _check_format_version(cls, value: str) -> str:
        if value != CACHE_FORMAT_VERSION:
            raise ValueError(f"Unsupported cache format version: {value}")
        return value

    @field_validator("created", mode="before")
    @classmethod
    def _normalize_created(cls, value: object) -> object:
        return parse_datetime(value) or value


@dataclass(frozen=True, slots=True)
class CacheStats:
    exists: bool
    size: int
    packages: int
    entries: int
    created: datetime | None = None
    valid: bool = False


class CacheError(Exception):
    pass


class CacheWriteFailure(CacheError):
    pass


class MetadataCache(Protocol):
    async def get(
        self, name: str, version: str, *, ttl: int | None = None
    ) -> dict[str, Any] | None: ...
    async def put(self, name: str, version: str, data: Mapping[str, Any]) -> None: ...
    async def is_valid(self) -> bool: ...
    async def clear(self) -> None: ...
    async def stats(self) -> CacheStats: ...
