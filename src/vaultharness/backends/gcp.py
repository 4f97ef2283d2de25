"""
Google Cloud Secret Manager harness.

Talks to the Secret Manager REST API with an access token minted from the
service account in GCP_SERVICE_ACCOUNT. Secret payloads are binary on the
wire, so the envelope is sent base64-encoded.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import logging
from typing import Any

import google.auth.transport.requests
import httpx
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from vaultharness import envelope
from vaultharness.base import VaultBackend, VaultHarness
from vaultharness.errors import FatalSetupError

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class GCPHarness(VaultHarness):
    """Harness for Google Cloud Secret Manager."""

    BACKEND = VaultBackend.GCP

    REQUIRED_ENV = ("GCP_SERVICE_ACCOUNT",)

    def __init__(self, settings=None, config=None):
        super().__init__(settings, config)
        self.credentials: service_account.Credentials | None = None
        self.client: httpx.Client | None = None

    def _setup(self, env: dict[str, str]) -> None:
        try:
            info = json.loads(env["GCP_SERVICE_ACCOUNT"])
        except json.JSONDecodeError as e:
            raise FatalSetupError(
                f"GCP_SERVICE_ACCOUNT is not valid JSON: {e}", missing="GCP_SERVICE_ACCOUNT"
            ) from e

        project_id = info.get("project_id") if isinstance(info, dict) else None
        if not project_id:
            raise FatalSetupError("GCP_SERVICE_ACCOUNT has no project_id", missing="project_id")

        self.config["project_id"] = project_id
        self.credentials = service_account.Credentials.from_service_account_info(
            info, scopes=[CLOUD_PLATFORM_SCOPE]
        )
        self.client = httpx.Client(
            base_url=self.settings.gcp_endpoint,
            timeout=self.settings.http_timeout,
        )

    def _teardown(self) -> None:
        self._release("http client", self.client)
        self.client = None
        self.credentials = None

    @property
    def project_path(self) -> str:
        return f"/projects/{self.config['project_id']}"

    def _create_secret(self, secret: str, value: str, opts: dict[str, Any]) -> None:
        self._request(
            "create",
            "POST",
            f"{self.project_path}/secrets",
            params={"secretId": secret},
            json={"replication": {"automatic": {}}},
        )

        self._update_secret(secret, value, opts)
        return None

    # Versions are immutable; each update adds one. opts are not used.
    def _update_secret(self, secret: str, value: str, opts: dict[str, Any]) -> str | None:
        data = self._request(
            "update",
            "POST",
            f"{self.project_path}/secrets/{secret}:addVersion",
            json={"payload": {"data": envelope.encode_base64(value)}},
        )
        return data.get("name")

    def _delete_secret(self, secret: str) -> None:
        self._request("delete", "DELETE", f"{self.project_path}/secrets/{secret}")

    def _auth_headers(self, operation: str) -> dict[str, str]:
        if not self.credentials.valid:
            try:
                self.credentials.refresh(google.auth.transport.requests.Request())
            except GoogleAuthError as e:
                raise self._rejected(operation, f"access token refresh failed: {e}") from e
        return {"Authorization": f"Bearer {self.credentials.token}"}

    def _request(self, operation: str, method: str, path: str, **kwargs) -> dict[str, Any]:
        headers = self._auth_headers(operation)
        try:
            resp = self.client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise self._rejected(operation, str(e)) from e

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}

        error = data.get("error") if isinstance(data, dict) else None
        if resp.status_code >= 300 or error:
            error = error if isinstance(error, dict) else {}
            raise self._rejected(
                operation,
                error.get("message") or resp.text or resp.reason_phrase,
                status=resp.status_code,
                code=error.get("status"),
            )

        logger.debug(f"gcp {method} {path}: {resp.status_code}")
        return data if isinstance(data, dict) else {}
