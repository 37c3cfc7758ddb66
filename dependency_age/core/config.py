from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
import tomllib
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dependency_age.core.paths.global_paths import (
    DEFAULT_CACHE_FILENAME,
    resolve_config_file,
)

PACKAGIST_URL = "https://repo.packagist.org"

DEFAULT_IGNORE_PACKAGES: tuple[str, ...] = (
    "psr/log",
    "psr/container",
    "psr/http-message",
    "psr/http-factory",
    "psr/cache",
    "psr/simple-cache",
    "psr/event-dispatcher",
    "psr/http-client",
    "psr/http-server-handler",
    "psr/http-server-middleware",
    "psr/link",
)

# In years; values below 10 are converted to days by the rating layer.
DEFAULT_THRESHOLDS: dict[str, float] = {"current": 0.5, "medium": 1.0, "old": 2.0}


class ConfigurationError(Exception):
    pass


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class RegistryConfig(_FrozenModel):
    base_url: str = PACKAGIST_URL
    timeout: float = Field(default=30.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)
    max_concurrent_requests: int = Field(default=5, ge=1)
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)
    retry_delay_multiplier: float = Field(default=1.5, ge=1)
    respect_rate_limit: bool = True
    request_delay: float = Field(default=0.1, ge=0)
    user_agent: str = "dependency-age/1.0"

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class CacheConfig(_FrozenModel):
    enabled: bool = True
    cache_file: str = DEFAULT_CACHE_FILENAME
    ttl: int = Field(default=86400, ge=0)
    max_size_bytes: int = Field(default=10 * 1024 * 1024, gt=0)


class BatchConfig(_FrozenModel):
    memory_limit_bytes: int | None = Field(default=None, gt=0)
    probe_url: str = PACKAGIST_URL
    probe_timeout: float = Field(default=3.0, gt=0)
    probe_connect_timeout: float = Field(default=2.0, gt=0)


class EnrichmentConfig(_FrozenModel):
    batch_threshold: int = Field(default=10, ge=0)
    release_history_months: int = Field(default=24, ge=1)
    release_history_ttl: int = Field(default=7 * 86400, ge=0)


class DependencyAgeConfig(_FrozenModel):
    ignore: tuple[str, ...] = DEFAULT_IGNORE_PACKAGES
    thresholds: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_THRESHOLDS)
    )
    include_dev: bool = True
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)

    @field_validator("thresholds")
    @classmethod
    def _validate_thresholds(cls, value: dict[str, float]) -> dict[str, float]:
        unknown = set(value) - set(DEFAULT_THRESHOLDS)
        if unknown:
            raise ValueError(f"Unknown threshold(s): {', '.join(sorted(unknown))}")
        if any(threshold <= 0 for threshold in value.values()):
            raise ValueError("Thresholds must be positive")
        merged = {**DEFAULT_THRESHOLDS, **value}
        if not merged["current"] < merged["medium"] < merged["old"]:
            raise ValueError("Thresholds must be ascending: current < medium < old")
        return merged

    def is_package_ignored(self, package_name: str) -> bool:
        return package_name in self.ignore

    def with_overrides(self, **changes: Any) -> DependencyAgeConfig:
        data = self.model_dump()
        for key, value in changes.items():
            if value is None:
                continue
            if key == "ignore":
                data["ignore"] = (*data["ignore"], *value)
            elif isinstance(value, Mapping) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return build_config(data)


# Flat keys accepted at the top level of the TOML file, mapped to their section.
_FLAT_KEYS: dict[str, tuple[str, str]] = {
    "cache_file": ("cache", "cache_file"),
    "cache_ttl": ("cache", "ttl"),
    "api_timeout": ("registry", "timeout"),
    "max_concurrent_requests": ("registry", "max_concurrent_requests"),
    "release_history_months": ("enrichment", "release_history_months"),
}


def build_config(raw: Mapping[str, Any]) -> DependencyAgeConfig:
    data: dict[str, Any] = {}
    for key, value in raw.items():
        if key in _FLAT_KEYS:
            section, field = _FLAT_KEYS[key]
            data.setdefault(section, {})[field] = value
        elif key == "ignore":
            data["ignore"] = tuple(dict.fromkeys([*DEFAULT_IGNORE_PACKAGES, *value]))
        elif isinstance(value, Mapping):
            data[key] = {**data.get(key, {}), **value}
        else:
            data[key] = value

    try:
        return DependencyAgeConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_config(path: Path | None = None) -> DependencyAgeConfig:
    config_file = path if path is not None else resolve_config_file()
    if not config_file.is_file():
        return DependencyAgeConfig()

    try:
        with config_file.open("rb") as handle:
            raw = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(
            f"Could not read configuration file {config_file}: {exc}"
        ) from exc

    return build_config(raw.get("dependency-age", raw))
