from __future__ import annotations

from dependency_age.core.cache.adapters.filesystem_metadata_cache import (
    CacheLoadResult,
    CacheLoadStatus,
    FileSystemMetadataCache,
    parse_cache_store,
)
from dependency_age.core.cache.ports.metadata_cache import (
    CACHE_FORMAT_VERSION,
    CacheEntry,
    CacheError,
    CacheStats,
    CacheStore,
    CacheWriteFailure,
    MetadataCache,
)

__all__ = [
    "CACHE_FORMAT_VERSION",
    "CacheEntry",
    "CacheError",
    "CacheLoadResult",
    "CacheLoadStatus",
    "CacheStats",
    "CacheStore",
    "CacheWriteFailure",
    "FileSystemMetadataCache",
    "MetadataCache",
    "parse_cache_store",
]
