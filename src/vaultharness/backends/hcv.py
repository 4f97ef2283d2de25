"""
HashiCorp Vault harness (KV secrets engine, v1 or v2).

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from types import MappingProxyType
from typing import Any

import hvac
import requests
from hvac.exceptions import InvalidPath, VaultError

from vaultharness import envelope
from vaultharness.base import VaultBackend, VaultHarness
from vaultharness.errors import BackendRejected, FatalSetupError

logger = logging.getLogger(__name__)

KV_VERSIONS = ("v1", "v2")


class HashiCorpVaultHarness(VaultHarness):
    """Harness for a HashiCorp Vault dev server."""

    BACKEND = VaultBackend.HCV

    DEFAULT_CONFIG = MappingProxyType({
        "protocol": "http",
        "host": "localhost",
        "port": 8200,
        "mount": "secret",
        "kv": "v2",
        "token": "vault-plaintext-root-token",
    })

    def __init__(self, settings=None, config=None):
        super().__init__(settings, config)
        self.client: hvac.Client | None = None

    @property
    def url(self) -> str:
        return f"{self.config['protocol']}://{self.config['host']}:{self.config['port']}"

    def _setup(self, env: dict[str, str]) -> None:
        self._require_config("protocol", "host", "port", "mount", "kv", "token")
        if self.config["kv"] not in KV_VERSIONS:
            raise FatalSetupError(
                f"unsupported kv version {self.config['kv']!r} (expected one of {', '.join(KV_VERSIONS)})",
                missing="kv",
            )

        self.client = hvac.Client(
            url=self.url,
            token=self.config["token"],
            namespace=self.config.get("namespace"),
            timeout=self.settings.http_timeout,
        )

    def _teardown(self) -> None:
        if self.client is not None:
            self._release("vault adapter", self.client.adapter)
        self.client = None

    @property
    def kv(self):
        return getattr(self.client.secrets.kv, self.config["kv"])

    # Writing a KV path creates it, so there is no separate create call
    def _create_secret(self, secret: str, value: str, opts: dict[str, Any]) -> None:
        self._update_secret(secret, value, opts)
        return None

    def _update_secret(self, secret: str, value: str, opts: dict[str, Any]) -> str | None:
        res = self._call(
            "update",
            self.kv.create_or_update_secret,
            path=secret,
            secret=envelope.wrap(value),
            mount_point=self.config["mount"],
        )

        if self.config["kv"] == "v2" and isinstance(res, dict):
            version = res.get("data", {}).get("version")
            return str(version) if version is not None else None
        return None

    def _delete_secret(self, secret: str) -> None:
        if self.config["kv"] == "v2":
            method = self.kv.delete_metadata_and_all_versions
        else:
            method = self.kv.delete_secret

        try:
            self._call("delete", method, path=secret, mount_point=self.config["mount"])
        except BackendRejected as e:
            if e.code != InvalidPath.__name__:
                raise
            logger.debug(f"hcv secret {secret} is already deleted")

    def _call(self, operation: str, method, **kwargs) -> Any:
        try:
            return method(**kwargs)
        except VaultError as e:
            raise self._rejected(operation, str(e), code=type(e).__name__) from e
        except requests.exceptions.RequestException as e:
            raise self._rejected(operation, str(e)) from e
