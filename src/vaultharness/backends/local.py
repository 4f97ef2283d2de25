"""
Local test vault harness.

The test vault is an HTTP mock that runs next to the system under test. Its
secrets live in memory and are managed with plain requests:

    PUT    /secrets/<name>   {"value": "...", "ttl": 10}
    GET    /secrets/<name>
    DELETE /secrets/<name>

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import logging
from datetime import datetime
from types import MappingProxyType
from typing import Any

import httpx

from vaultharness import envelope
from vaultharness.base import VaultBackend, VaultHarness

logger = logging.getLogger(__name__)

SECRETS_PATH = "/secrets/"


class LocalVaultMock:
    """In-memory HTTP mock backing the test vault."""

    def __init__(self):
        self.store: dict[str, dict[str, Any]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        return self.handle(request)

    def handle(self, request: httpx.Request) -> httpx.Response:
        """Serve one request; usable as an ``httpx.MockTransport`` handler."""
        path = request.url.path
        if not path.startswith(SECRETS_PATH) or len(path) == len(SECRETS_PATH):
            return httpx.Response(404, json={"message": "not found"})

        name = path[len(SECRETS_PATH):]
        method = request.method.upper()

        if method == "PUT":
            try:
                body = json.loads(request.content or b"{}")
            except json.JSONDecodeError:
                return httpx.Response(400, json={"message": "invalid JSON body"})
            if not isinstance(body, dict) or not isinstance(body.get("value"), str):
                return httpx.Response(400, json={"message": "value is required"})

            entry = {
                "name": name,
                "value": body["value"],
                "ttl": body.get("ttl"),
                "updated_at": datetime.now().isoformat(),
            }
            self.store[name] = entry
            return httpx.Response(200, json=entry)

        if method == "GET":
            entry = self.store.get(name)
            if entry is None:
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json=entry)

        if method == "DELETE":
            self.store.pop(name, None)
            return httpx.Response(204)

        return httpx.Response(405, json={"message": "method not allowed"})

    def get(self, name: str) -> str | None:
        """Stored (enveloped) value for a secret."""
        entry = self.store.get(name)
        return entry["value"] if entry else None


class LocalVaultHarness(VaultHarness):
    """Harness for the local test vault."""

    BACKEND = VaultBackend.TEST

    DEFAULT_CONFIG = MappingProxyType({
        "default_value": "DEFAULT",
        "default_value_ttl": 1,
    })

    def __init__(self, settings=None, config=None):
        super().__init__(settings, config)
        self.mock = LocalVaultMock()
        self.client: httpx.Client | None = None

    def _setup(self, env: dict[str, str]) -> None:
        transport = None
        if self.settings.test_vault_in_process:
            transport = httpx.MockTransport(self.mock.handle)

        self.client = httpx.Client(
            base_url=self.settings.test_vault_url,
            timeout=self.settings.http_timeout,
            transport=transport,
        )

    def _teardown(self) -> None:
        self._release("test vault client", self.client)
        self.client = None

    def _create_secret(self, secret: str, value: str, opts: dict[str, Any]) -> None:
        # create_secret runs before the system under test is started, and the
        # mock is served by that process, so the backend cannot be reached
        # yet. The test vault falls back to its configured default value once,
        # which lets the secret resolve during startup.
        self.config["default_value"] = envelope.encode(value)
        return None

    def _update_secret(self, secret: str, value: str, opts: dict[str, Any]) -> None:
        body = {**opts, "value": envelope.encode(value)}
        self._request("update", "PUT", secret, json=body)
        return None

    def _delete_secret(self, secret: str) -> None:
        self._request("delete", "DELETE", secret)

    def fixtures(self) -> dict[str, Any]:
        return {
            "http_mock": {
                "test_vault": self.mock,
            }
        }

    def _request(self, operation: str, method: str, secret: str, **kwargs) -> httpx.Response:
        try:
            resp = self.client.request(method, f"{SECRETS_PATH}{secret}", **kwargs)
        except httpx.HTTPError as e:
            raise self._rejected(operation, str(e)) from e

        if resp.status_code >= 300:
            raise self._rejected(operation, resp.text or resp.reason_phrase, status=resp.status_code)
        return resp
