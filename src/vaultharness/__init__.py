"""
Vault conformance harnesses.

Drives the same secret lifecycle (create, update, delete) against several
secret-storage backends through one interface, so a single test suite can
validate behavior on every backend.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

__version__ = "1.0.0"

from vaultharness.base import HarnessState, VaultBackend, VaultHarness
from vaultharness.config import HarnessSettings
from vaultharness.errors import (
    BackendRejected,
    FatalSetupError,
    HarnessError,
    HarnessStateError,
    RecoverableConflict,
    RetryTimeout,
    UnknownBackend,
)
from vaultharness.registry import (
    HARNESS_MAP,
    available_backends,
    create_harness,
    get_harness_class,
)
from vaultharness.retry import EventualConsistency, RetryPolicy, RetryState, eventually

__all__ = [
    "__version__",
    "VaultHarness",
    "VaultBackend",
    "HarnessState",
    "HarnessSettings",
    "HarnessError",
    "UnknownBackend",
    "FatalSetupError",
    "HarnessStateError",
    "BackendRejected",
    "RecoverableConflict",
    "RetryTimeout",
    "HARNESS_MAP",
    "available_backends",
    "create_harness",
    "get_harness_class",
    "EventualConsistency",
    "RetryPolicy",
    "RetryState",
    "eventually",
]
