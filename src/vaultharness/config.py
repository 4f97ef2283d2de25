"""
Settings shared by all vault harnesses.

Backend credentials are not part of the settings: each harness reads its own
credentials from the environment during setup().

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import os
from dataclasses import dataclass, field
from typing import Any

from vaultharness.retry import DEFAULT_INTERVAL, DEFAULT_TIMEOUT

ENV_PREFIX = "VAULTHARNESS_"


def _float_env(name: str, default: float, errors: list[str]) -> float:
    """Read a numeric setting. Unparseable values fall back to the default
    and are reported through ``errors``."""
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        errors.append(f"{ENV_PREFIX}{name} must be a number, got {raw!r}")
        return default


@dataclass
class HarnessSettings:
    """Settings for harness instances."""

    # Eventual-consistency retry budget
    retry_timeout: float = DEFAULT_TIMEOUT
    retry_interval: float = DEFAULT_INTERVAL

    # Local test vault (HTTP mock served next to the system under test)
    test_vault_url: str = "http://127.0.0.1:9292"

    # Serve the test vault mock inside this process instead of over the network
    test_vault_in_process: bool = False

    # Google Secret Manager REST endpoint
    gcp_endpoint: str = "https://secretmanager.googleapis.com/v1"

    # Per-request transport timeout for HTTP based harnesses
    http_timeout: float = 30.0

    # Environment values that could not be parsed, reported by validate()
    env_errors: list[str] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_env(cls) -> "HarnessSettings":
        """Load settings from environment variables."""
        env_errors: list[str] = []
        return cls(
            retry_timeout=_float_env("RETRY_TIMEOUT", DEFAULT_TIMEOUT, env_errors),
            retry_interval=_float_env("RETRY_INTERVAL", DEFAULT_INTERVAL, env_errors),
            test_vault_url=os.environ.get(f"{ENV_PREFIX}TEST_VAULT_URL", "http://127.0.0.1:9292"),
            test_vault_in_process=os.environ.get(
                f"{ENV_PREFIX}TEST_VAULT_IN_PROCESS", ""
            ).lower() in ("true", "yes", "1"),
            gcp_endpoint=os.environ.get(
                f"{ENV_PREFIX}GCP_ENDPOINT", "https://secretmanager.googleapis.com/v1"
            ),
            http_timeout=_float_env("HTTP_TIMEOUT", 30.0, env_errors),
            env_errors=env_errors,
        )

    def validate(self) -> list[str]:
        """Validate settings. Returns list of errors."""
        errors = list(self.env_errors)

        if self.retry_timeout < 0:
            errors.append("Retry timeout must not be negative")
        if self.retry_interval <= 0:
            errors.append("Retry interval must be positive")
        if self.http_timeout <= 0:
            errors.append("HTTP timeout must be positive")
        if not self.test_vault_url.startswith(("http://", "https://")):
            errors.append("Test vault URL must be an http(s) URL")
        if not self.gcp_endpoint.startswith(("http://", "https://")):
            errors.append("GCP endpoint must be an http(s) URL")

        return errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "retry_timeout": self.retry_timeout,
            "retry_interval": self.retry_interval,
            "test_vault_url": self.test_vault_url,
            "test_vault_in_process": self.test_vault_in_process,
            "gcp_endpoint": self.gcp_endpoint,
            "http_timeout": self.http_timeout,
        }
