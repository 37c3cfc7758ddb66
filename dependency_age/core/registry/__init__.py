from __future__ import annotations

from dependency_age.core.registry.adapters.packagist_registry_client import (
    PackagistRegistryClient,
)
from dependency_age.core.registry.ports.registry_gateway import (
    DEFAULT_REGISTRY_MESSAGES,
    RegistryError,
    RegistryErrorCause,
    RegistryGateway,
    RegistryNotFound,
    RegistryUnavailable,
    RegistryVersion,
    RegistryVersionList,
    VersionNotFound,
)

__all__ = [
    "DEFAULT_REGISTRY_MESSAGES",
    "PackagistRegistryClient",
    "RegistryError",
    "RegistryErrorCause",
    "RegistryGateway",
    "RegistryNotFound",
    "RegistryUnavailable",
    "RegistryVersion",
    "RegistryVersionList",
    "VersionNotFound",
]
