"""
Abstract base class and lifecycle for vault test harnesses.

A vault test harness is a driver for one secret-storage backend. It
implements the glue for initializing the backend and performing secret
writes, so a single test suite can exercise any backend through the same
operations:

    setup() -> create_secret() / update_secret() / delete_secret() -> teardown()

The class attributes of a harness (backend name, default configuration,
required environment) are its read-only definition. Everything mutable lives
on the instance and is scoped to one test run.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import copy
import logging
import os
import time
from abc import ABC, abstractmethod
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from vaultharness.config import HarnessSettings
from vaultharness.errors import (
    BackendRejected,
    FatalSetupError,
    HarnessStateError,
)
from vaultharness.retry import EventualConsistency, RetryPolicy

logger = logging.getLogger(__name__)


class VaultBackend(str, Enum):
    """Secret-storage backends with a harness."""
    TEST = "test"
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"
    HCV = "hcv"


class HarnessState(str, Enum):
    """Lifecycle state of a harness instance."""
    UNINITIALIZED = "uninitialized"
    CONFIGURED = "configured"
    ACTIVE = "active"
    TORN_DOWN = "torn_down"


class VaultHarness(ABC):
    """Uniform driver for one secret-storage backend.

    Subclasses implement the underscored hooks. The public methods enforce
    the lifecycle, keep the record of created secrets and log each call.
    """

    BACKEND: VaultBackend = VaultBackend.TEST

    # Passed verbatim to the system under test when it creates its vault entity
    DEFAULT_CONFIG: Mapping[str, Any] = MappingProxyType({})

    # Environment variables that must be set before setup() succeeds
    REQUIRED_ENV: tuple[str, ...] = ()

    def __init__(
        self,
        settings: HarnessSettings | None = None,
        config: Mapping[str, Any] | None = None,
    ):
        """Initialize harness state for one test run.

        Args:
            settings: Harness settings (loads from env if not provided)
            config: Overrides merged onto the default configuration
        """
        self.settings = settings or HarnessSettings.from_env()
        self.config: dict[str, Any] = copy.deepcopy(dict(self.DEFAULT_CONFIG))
        if config:
            self.config.update(copy.deepcopy(dict(config)))

        # secrets that were created during the test run, for cleanup purposes
        self.secrets: list[str] = []

        self.state = HarnessState.UNINITIALIZED
        self.teardown_errors: list[Exception] = []
        self._setup_attempted = False

        # Overridable so retry timing can be driven without real waits
        self.clock = time.monotonic
        self.sleep = time.sleep

    @property
    def name(self) -> str:
        return self.BACKEND.value

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} state={self.state.value} secrets={len(self.secrets)}>"

    def __enter__(self) -> "VaultHarness":
        self.setup()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.teardown()
        return False

    # Hooks
    @abstractmethod
    def _setup(self, env: dict[str, str]) -> None:
        """Establish backend clients. ``env`` holds the REQUIRED_ENV values."""
        pass

    @abstractmethod
    def _create_secret(self, secret: str, value: str, opts: dict[str, Any]) -> str | None:
        """Create a secret. Returns the backend identifier, if it assigns one."""
        pass

    @abstractmethod
    def _update_secret(self, secret: str, value: str, opts: dict[str, Any]) -> str | None:
        """Write a new value. Returns the version identifier, if any."""
        pass

    @abstractmethod
    def _delete_secret(self, secret: str) -> None:
        """Delete a secret."""
        pass

    def _teardown(self) -> None:
        """Release backend clients."""
        pass

    # Lifecycle
    def setup(self) -> None:
        """Validate configuration and establish backend clients.

        Must run exactly once, before any secret operation.

        Raises:
            FatalSetupError: Missing credential or configuration; the run for
                this backend must be aborted
            HarnessStateError: setup() was already called
        """
        if self._setup_attempted or self.state != HarnessState.UNINITIALIZED:
            raise HarnessStateError(f"{self.name} harness setup() may only run once")
        self._setup_attempted = True

        errors = self.settings.validate()
        if errors:
            raise FatalSetupError(f"Invalid harness settings: {', '.join(errors)}")

        env = self._read_env()

        logger.info(f"Setting up {self.name} vault harness")
        try:
            self._setup(env)
        except FatalSetupError:
            raise
        except Exception as e:
            raise FatalSetupError(f"{self.name} harness setup failed: {e}") from e

        self.state = HarnessState.CONFIGURED

    def teardown(self) -> None:
        """Release backend clients.

        Safe to call in any state and more than once. Failures are logged and
        kept in ``teardown_errors``; they are never raised so they cannot
        replace an earlier test failure.
        """
        if self.state == HarnessState.TORN_DOWN:
            return

        logger.info(f"Tearing down {self.name} vault harness ({len(self.secrets)} secrets created)")
        try:
            self._teardown()
        except Exception as e:
            logger.error(f"{self.name} harness teardown failed: {e}")
            self.teardown_errors.append(e)
        finally:
            self.state = HarnessState.TORN_DOWN

    # Secret operations
    def create_secret(self, secret: str, value: str, opts: dict[str, Any] | None = None) -> str:
        """Create a secret holding the enveloped value.

        Returns:
            The identifier recorded for cleanup
        """
        self._require_ready("create_secret")
        logger.debug(f"{self.name}: create_secret {secret}")

        identifier = self._create_secret(secret, value, dict(opts or {}))
        if identifier is None:
            identifier = secret

        self.secrets.append(identifier)
        self.state = HarnessState.ACTIVE
        return identifier

    def update_secret(self, secret: str, value: str, opts: dict[str, Any] | None = None) -> str | None:
        """Overwrite (or add a version of) a secret with the enveloped value.

        Returns:
            The new version identifier for versioned backends, else None
        """
        self._require_ready("update_secret")
        logger.debug(f"{self.name}: update_secret {secret}")

        version = self._update_secret(secret, value, dict(opts or {}))
        self.state = HarnessState.ACTIVE
        return version

    def delete_secret(self, secret: str) -> None:
        """Delete a secret. The record of created secrets is left untouched."""
        self._require_ready("delete_secret")
        logger.debug(f"{self.name}: delete_secret {secret}")

        self._delete_secret(secret)
        self.state = HarnessState.ACTIVE

    def fixtures(self) -> dict[str, Any] | None:
        """Fixture data for the process running the system under test."""
        return None

    # Helpers
    def _require_ready(self, operation: str) -> None:
        if self.state not in (HarnessState.CONFIGURED, HarnessState.ACTIVE):
            raise HarnessStateError(
                f"{self.name} harness cannot {operation} in state {self.state.value}; call setup() first"
            )

    def _read_env(self) -> dict[str, str]:
        """Read REQUIRED_ENV, failing on the first missing variable."""
        env = {}
        for var in self.REQUIRED_ENV:
            value = os.environ.get(var)
            if not value:
                raise FatalSetupError(f"missing {var} environment variable", missing=var)
            env[var] = value
        return env

    def _require_config(self, *keys: str) -> None:
        for key in keys:
            if self.config.get(key) in (None, ""):
                raise FatalSetupError(f"missing {key!r} in {self.name} harness config", missing=key)

    def _rejected(
        self,
        operation: str,
        message: str,
        status: int | None = None,
        code: str | None = None,
    ) -> BackendRejected:
        return BackendRejected(self.name, operation, message, status=status, code=code)

    def retry_policy(self, **kwargs: Any) -> RetryPolicy:
        """Build a retry policy from the harness settings."""
        kwargs.setdefault("timeout", self.settings.retry_timeout)
        kwargs.setdefault("interval", self.settings.retry_interval)
        return RetryPolicy(**kwargs)

    def _eventually(self, attempt, policy: RetryPolicy) -> Any:
        return EventualConsistency(policy, clock=self.clock, sleep=self.sleep).run(attempt)

    def _release(self, label: str, handle: Any) -> None:
        """Close one client handle, recording (not raising) failures."""
        if handle is None:
            return
        close = getattr(handle, "close", None)
        if close is None:
            return
        try:
            close()
        except Exception as e:
            logger.error(f"{self.name} harness failed to close {label}: {e}")
            self.teardown_errors.append(e)
