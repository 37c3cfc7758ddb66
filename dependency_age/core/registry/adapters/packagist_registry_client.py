from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
import logging
import time
import types

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dependency_age.core.config import RegistryConfig
from dependency_age.core.registry.ports.registry_gateway import (
    RegistryError,
    RegistryErrorCause,
    RegistryNotFound,
    RegistryUnavailable,
    RegistryVersion,
    RegistryVersionList,
)

logger = logging.getLogger(__name__)


class PackagistRegistryClient:
    def __init__(
        self,
        config: RegistryConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        get_time: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or RegistryConfig()
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._get_time = get_time
        self._throttle_lock = asyncio.Lock()
        self._last_request_at: float | None = None

    async def __aenter__(self) -> PackagistRegistryClient:
        if self._client is None:
            self._client = self._build_client()
            self._owns_client = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def _http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._build_client()
            self._owns_client = True
        return self._client

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout(), follow_redirects=True)

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self._config.timeout, connect=self._config.connect_timeout)

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._config.user_agent, "Accept": "application/json"}

    def package_url(self, name: str) -> str:
        return f"{self._config.base_url}/p2/{name}.json"

    async def fetch_one(self, name: str) -> RegistryVersionList:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._config.retry_attempts),
            wait=wait_exponential(
                multiplier=self._config.retry_base_delay,
                exp_base=self._config.retry_delay_multiplier,
            ),
            retry=retry_if_exception_type(RegistryUnavailable),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return await retrying(self._request, name)
        except RegistryUnavailable as exc:
            raise RegistryUnavailable(
                name,
                cause=exc.cause,
                message=(
                    f"Failed after {self._config.retry_attempts} attempt(s). "
                    f"Last error: {exc.detail}"
                ),
            ) from exc

    async def _throttle(self) -> None:
        # Consecutive requests start at least request_delay seconds apart.
        delay = self._config.request_delay
        if not self._config.respect_rate_limit or delay <= 0:
            return
        async with self._throttle_lock:
            if self._last_request_at is not None:
                remaining = self._last_request_at + delay - self._get_time()
                if remaining > 0:
                    await self._sleep(remaining)
            self._last_request_at = self._get_time()

    async def _request(self, name: str) -> RegistryVersionList:
        await self._throttle()
        try:
            response = await self._http_client.get(
                self.package_url(name), headers=self._headers(), timeout=self._timeout()
            )
        except httpx.HTTPError as exc:
            raise RegistryUnavailable(
                name, cause=RegistryErrorCause.REQUEST_FAILED, message=str(exc)
            ) from exc

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise RegistryUnavailable(name, cause=RegistryErrorCause.TOO_MANY_REQUESTS)

        if response.is_server_error:
            raise RegistryUnavailable(
                name,
                cause=RegistryErrorCause.ERROR_RESPONSE,
                message=f"HTTP {response.status_code}",
            )

        if response.is_client_error:
            raise RegistryNotFound(name, message=f"HTTP {response.status_code}")

        return _parse_versions(name, response)

    async def fetch_many(
        self, names: Iterable[str], max_concurrency: int | None = None
    ) -> dict[str, RegistryVersionList | None]:
        unique_names = list(dict.fromkeys(names))
        if not unique_names:
            return {}

        semaphore = asyncio.Semaphore(
            max(1, max_concurrency or self._config.max_concurrent_requests)
        )

        async def fetch(name: str) -> RegistryVersionList | None:
            async with semaphore:
                try:
                    return await self.fetch_one(name)
                except RegistryError as exc:
                    logger.debug("Registry lookup failed for %s: %s", name, exc)
                    return None

        tasks: dict[str, asyncio.Task[RegistryVersionList | None]] = {}
        async with asyncio.TaskGroup() as group:
            for name in unique_names:
                tasks[name] = group.create_task(fetch(name))

        return {name: task.result() for name, task in tasks.items()}

    async def exists(self, name: str) -> bool:
        try:
            await self.fetch_one(name)
        except RegistryError:
            return False
        return True


def _parse_versions(name: str, response: httpx.Response) -> RegistryVersionList:
    try:
        payload = response.json()
    except ValueError as exc:
        raise RegistryUnavailable(
            name, cause=RegistryErrorCause.INVALID_RESPONSE
        ) from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("packages"), dict):
        raise RegistryUnavailable(name, cause=RegistryErrorCause.INVALID_RESPONSE)

    entries = payload["packages"].get(name)
    if entries is None:
        raise RegistryNotFound(name, message="Package missing from registry response.")
    if not isinstance(entries, list):
        raise RegistryUnavailable(name, cause=RegistryErrorCause.INVALID_RESPONSE)

    versions: RegistryVersionList = []
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("version"), str):
            continue
        try:
            versions.append(RegistryVersion.model_validate(entry))
        except ValidationError:
            versions.append(RegistryVersion(version=entry["version"]))
    return versions
