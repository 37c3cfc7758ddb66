from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
import gc
import logging
import os
from typing import TypeVar

import httpx
import psutil

from dependency_age.core.config import BatchConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

MEMORY_LIMIT_WARNING_THRESHOLD = 0.8
BATCH_SIZE_SMALL = 10
BATCH_SIZE_MEDIUM = 25
BATCH_SIZE_LARGE = 50
SMALL_ITEM_COUNT = 20
MEDIUM_ITEM_COUNT = 100
GC_MIN_BATCH_COUNT = 10
GC_EVERY_N_BATCHES = 5


@dataclass(frozen=True, slots=True)
class MemoryUsage:
    current: int
    peak: int
    limit: int | None
    usage_percentage: float


def _process_memory_usage() -> int:
    return psutil.Process(os.getpid()).memory_info().rss


class BatchSizer:
    """Chooses batch sizes from memory pressure and reclaims memory between batches."""

    def __init__(
        self,
        config: BatchConfig | None = None,
        *,
        get_memory_usage: Callable[[], int] = _process_memory_usage,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or BatchConfig()
        self._get_memory_usage = get_memory_usage
        self._client = client
        self._peak_usage = 0

    def _current_usage(self) -> int:
        usage = self._get_memory_usage()
        self._peak_usage = max(self._peak_usage, usage)
        return usage

    def is_under_memory_pressure(self) -> bool:
        limit = self._config.memory_limit_bytes
        if limit is None:
            return False
        return self._current_usage() > limit * MEMORY_LIMIT_WARNING_THRESHOLD

    def optimal_batch_size(self, items: Sequence[object]) -> int:
        if self.is_under_memory_pressure():
            return BATCH_SIZE_SMALL

        count = len(items)
        if count < SMALL_ITEM_COUNT:
            return min(count, BATCH_SIZE_SMALL)
        if count < MEDIUM_ITEM_COUNT:
            return BATCH_SIZE_MEDIUM
        return BATCH_SIZE_LARGE

    def memory_usage_info(self) -> MemoryUsage:
        current = self._current_usage()
        limit = self._config.memory_limit_bytes
        return MemoryUsage(
            current=current,
            peak=self._peak_usage,
            limit=limit,
            usage_percentage=(current / limit) * 100 if limit else 0.0,
        )

    def collect_garbage(self) -> int:
        before = self._current_usage()
        gc.collect()
        return max(0, before - self._current_usage())

    async def process_in_batches(
        self,
        items: Sequence[T],
        processor: Callable[[list[T], int], Awaitable[list[R]]],
    ) -> list[R]:
        batch_size = max(1, self.optimal_batch_size(items))
        batches = [
            list(items[start : start + batch_size])
            for start in range(0, len(items), batch_size)
        ]

        results: list[R] = []
        for index, batch in enumerate(batches):
            results.extend(await processor(batch, index))

            if (
                len(batches) > GC_MIN_BATCH_COUNT
                and (index + 1) % GC_EVERY_N_BATCHES == 0
            ):
                freed = self.collect_garbage()
                logger.debug("GC after batch %d freed %d bytes", index, freed)

        return results

    async def is_offline(self) -> bool:
        timeout = httpx.Timeout(
            self._config.probe_timeout, connect=self._config.probe_connect_timeout
        )
        try:
            if self._client is not None:
                response = await self._client.head(
                    self._config.probe_url, timeout=timeout, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(
                    timeout=timeout, follow_redirects=True
                ) as client:
                    response = await client.head(self._config.probe_url)
        except httpx.HTTPError as exc:
            logger.debug("Registry probe failed: %s", exc)
            return True

        return not (response.is_success or response.is_redirect)
