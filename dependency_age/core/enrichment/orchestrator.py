from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
import logging

from pydantic import ValidationError

from dependency_age.core.batching import BatchSizer
from dependency_age.core.cache.ports.metadata_cache import CacheEntry, MetadataCache
from dependency_age.core.config import EnrichmentConfig
from dependency_age.core.enrichment.release_history import (
    deserialize_release_history,
    extract_release_history,
    release_history_cache_key,
    serialize_release_history,
)
from dependency_age.core.enrichment.resolution import (
    find_version,
    resolve_latest_stable,
)
from dependency_age.core.models import Package
from dependency_age.core.registry.ports.registry_gateway import (
    RegistryError,
    RegistryGateway,
    RegistryVersionList,
    VersionNotFound,
)
from dependency_age.core.utils import format_datetime, utc_now
from dependency_age.core.versions import is_dev_version

logger = logging.getLogger(__name__)


class EnrichmentOrchestrator:
    """Attaches release metadata to installed packages.

    The cache is consulted first; misses go to the registry either one by one or,
    for larger sets, in bounded concurrent batches. ``enrich_many`` never fails
    because of a single package: unknown or unreachable packages are returned
    as they came in.
    """

    def __init__(
        self,
        registry: RegistryGateway,
        config: EnrichmentConfig | None = None,
        *,
        cache: MetadataCache | None = None,
        batch_sizer: BatchSizer | None = None,
        offline: bool = False,
        get_current_time: Callable[[], datetime] = utc_now,
    ) -> None:
        self._registry = registry
        self._config = config or EnrichmentConfig()
        self._cache = cache
        self._batch_sizer = batch_sizer or BatchSizer()
        self._offline = offline
        self._get_current_time = get_current_time

    @property
    def offline(self) -> bool:
        return self._offline

    async def enrich_one(self, package: Package) -> Package:
        if is_dev_version(package.version):
            return package

        if cached := await self._from_cache(package):
            return cached

        versions = await self._registry.fetch_one(package.name)
        return await self._resolve(package, versions)

    async def enrich_many(self, packages: Sequence[Package]) -> list[Package]:
        if self._offline:
            return [await self._from_cache(package) or package for package in packages]

        if len(packages) > self._config.batch_threshold:
            return await self._batch_sizer.process_in_batches(
                list(packages), self._enrich_batch
            )

        enriched: list[Package] = []
        for package in packages:
            try:
                enriched.append(await self.enrich_one(package))
            except RegistryError as exc:
                logger.debug("Keeping %s unenriched: %s", package.name, exc)
                enriched.append(package)
        return enriched

    async def enrich_release_history(
        self,
        package: Package,
        *,
        months: int | None = None,
        reference_date: datetime | None = None,
    ) -> Package:
        if is_dev_version(package.version):
            return package

        window = (
            months if months is not None else self._config.release_history_months
        )
        name, key = release_history_cache_key(package.name, window)

        if self._cache is not None:
            data = await self._cache.get(
                name, key, ttl=self._config.release_history_ttl
            )
            history = deserialize_release_history(data) if data is not None else None
            if history is not None:
                return package.with_release_history(history)

        if self._offline:
            return package

        versions = await self._registry.fetch_one(package.name)
        history = extract_release_history(
            versions,
            months=window,
            reference_date=reference_date or self._get_current_time(),
        )
        if self._cache is not None:
            await self._cache.put(name, key, serialize_release_history(history))
        return package.with_release_history(history)

    async def _enrich_batch(self, batch: list[Package], index: int) -> list[Package]:
        resolved: dict[int, Package] = {}
        misses: list[int] = []
        for position, package in enumerate(batch):
            if is_dev_version(package.version):
                resolved[position] = package
            elif cached := await self._from_cache(package):
                resolved[position] = cached
            else:
                misses.append(position)

        fetched = (
            await self._registry.fetch_many(batch[position].name for position in misses)
            if misses
            else {}
        )
        logger.debug(
            "Batch %d: %d cached, %d fetched", index, len(batch) - len(misses), len(misses)
        )

        for position in misses:
            package = batch[position]
            versions = fetched.get(package.name)
            if versions is None:
                resolved[position] = package
                continue
            try:
                resolved[position] = await self._resolve(package, versions)
            except RegistryError as exc:
                logger.debug("Keeping %s unenriched: %s", package.name, exc)
                resolved[position] = package

        return [resolved[position] for position in range(len(batch))]

    async def _from_cache(self, package: Package) -> Package | None:
        if self._cache is None or is_dev_version(package.version):
            return None

        data = await self._cache.get(package.name, package.version)
        if data is None:
            return None

        try:
            entry = CacheEntry.model_validate(data)
        except ValidationError:
            logger.debug("Ignoring malformed cache entry for %s", package.name)
            return None

        enriched = package.with_release_date(entry.release_date)
        if entry.latest_version is not None:
            enriched = enriched.with_latest_version(
                entry.latest_version, entry.latest_release_date
            )
        return enriched

    async def _resolve(self, package: Package, versions: RegistryVersionList) -> Package:
        installed = find_version(versions, package.version)
        if installed is None:
            raise VersionNotFound(package.name, package.version)

        enriched = package
        if installed.time is not None:
            enriched = enriched.with_release_date(installed.time)

        latest = resolve_latest_stable(versions)
        if latest is not None and latest.time is not None:
            enriched = enriched.with_latest_version(latest.version, latest.time)

        await self._store(enriched)
        return enriched

    async def _store(self, package: Package) -> None:
        if self._cache is None or package.release_date is None:
            return

        data: dict[str, str] = {"release_date": format_datetime(package.release_date)}
        if package.latest_version is not None:
            data["latest_version"] = package.latest_version
        if package.latest_release_date is not None:
            data["latest_release_date"] = format_datetime(package.latest_release_date)
        await self._cache.put(package.name, package.version, data)
