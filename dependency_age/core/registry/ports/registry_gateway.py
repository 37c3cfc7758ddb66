from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum, auto
from typing import Protocol

from pydantic import BaseModel, ConfigDict, field_validator

from dependency_age.core.utils import parse_datetime


class RegistryVersion(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    version: str
    time: datetime | None = None

    @field_validator("time", mode="before")
    @classmethod
    def _parse_time(cls, value: object) -> datetime | None:
        return parse_datetime(value)


RegistryVersionList = list[RegistryVersion]


class RegistryErrorCause(StrEnum):
    @staticmethod
    def _generate_next_value_(
        name: str, start: int, count: int, last_values: list[str]
    ) -> str:
        return name.lower()

    NOT_FOUND = auto()
    TOO_MANY_REQUESTS = auto()
    REQUEST_FAILED = auto()
    ERROR_RESPONSE = auto()
    INVALID_RESPONSE = auto()


DEFAULT_REGISTRY_MESSAGES: dict[RegistryErrorCause, str] = {
    RegistryErrorCause.NOT_FOUND: "Package not found in the registry.",
    RegistryErrorCause.TOO_MANY_REQUESTS: "Rate limit exceeded while querying the registry.",
    RegistryErrorCause.REQUEST_FAILED: "Network error while querying the registry.",
    RegistryErrorCause.ERROR_RESPONSE: "Unexpected response received from the registry.",
    RegistryErrorCause.INVALID_RESPONSE: "Received an invalid response from the registry.",
}


class RegistryError(Exception):
    def __init__(
        self,
        package_name: str,
        *,
        cause: RegistryErrorCause,
        message: str | None = None,
    ) -> None:
        self.package_name = package_name
        self.cause = cause
        detail = message or DEFAULT_REGISTRY_MESSAGES[cause]
        self.detail = detail
        super().__init__(f"{package_name}: {detail}")


class RegistryNotFound(RegistryError):
    def __init__(self, package_name: str, *, message: str | None = None) -> None:
        super().__init__(
            package_name, cause=RegistryErrorCause.NOT_FOUND, message=message
        )


class VersionNotFound(RegistryNotFound):
    def __init__(self, package_name: str, version: str) -> None:
        self.version = version
        super().__init__(
            package_name, message=f"Version '{version}' not found in the registry."
        )


class RegistryUnavailable(RegistryError):
    pass


class RegistryGateway(Protocol):
    async def fetch_one(self, name: str) -> RegistryVersionList: ...
    async def fetch_many(
        self, names: Iterable[str], max_concurrency: int | None = None
    ) -> dict[str, RegistryVersionList | None]: ...
    async def exists(self, name: str) -> bool: ...
