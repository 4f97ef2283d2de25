"""
Registry of vault harnesses by backend name.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from types import MappingProxyType
from typing import Any, Mapping

from vaultharness.backends import (
    AWSHarness,
    AzureHarness,
    GCPHarness,
    HashiCorpVaultHarness,
    LocalVaultHarness,
)
from vaultharness.base import VaultBackend, VaultHarness
from vaultharness.config import HarnessSettings
from vaultharness.errors import UnknownBackend

# Map backend enum to harness class
HARNESS_MAP: Mapping[VaultBackend, type[VaultHarness]] = MappingProxyType({
    VaultBackend.TEST: LocalVaultHarness,
    VaultBackend.AWS: AWSHarness,
    VaultBackend.AZURE: AzureHarness,
    VaultBackend.GCP: GCPHarness,
    VaultBackend.HCV: HashiCorpVaultHarness,
})


def available_backends() -> list[str]:
    """Names of all registered backends."""
    return [backend.value for backend in HARNESS_MAP]


def get_harness_class(name: str | VaultBackend) -> type[VaultHarness]:
    """Get the harness class registered for a backend.

    Args:
        name: Backend name or enum

    Returns:
        Harness class

    Raises:
        UnknownBackend: If no harness is registered under that name
    """
    try:
        backend = VaultBackend(name)
    except ValueError:
        raise UnknownBackend(str(name), available_backends()) from None

    harness_class = HARNESS_MAP.get(backend)
    if harness_class is None:
        raise UnknownBackend(backend.value, available_backends())
    return harness_class


def create_harness(
    name: str | VaultBackend,
    settings: HarnessSettings | None = None,
    config: Mapping[str, Any] | None = None,
) -> VaultHarness:
    """Create a fresh harness instance for one test run."""
    return get_harness_class(name)(settings=settings, config=config)
