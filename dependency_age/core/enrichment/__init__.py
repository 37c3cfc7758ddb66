from __future__ import annotations

from dependency_age.core.enrichment.orchestrator import EnrichmentOrchestrator
from dependency_age.core.enrichment.release_history import extract_release_history
from dependency_age.core.enrichment.resolution import (
    find_version,
    resolve_latest_stable,
)

__all__ = [
    "EnrichmentOrchestrator",
    "extract_release_history",
    "find_version",
    "resolve_latest_stable",
]
