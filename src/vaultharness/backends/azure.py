"""
Azure Key Vault harness.

Key Vault keeps deleted secrets in a recoverable state for a retention
window. Writing a name that is still soft-deleted fails with the inner error
code ObjectIsDeletedButRecoverable; the secret must be purged (or recovered)
before the name can be reused. Writes therefore run under the eventual
consistency retry controller, with a purge as remediation.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from typing import Any

from azure.core.exceptions import AzureError, HttpResponseError, ResourceNotFoundError
from azure.identity import ClientSecretCredential
from azure.keyvault.secrets import KeyVaultSecret, SecretClient

from vaultharness import envelope
from vaultharness.base import VaultBackend, VaultHarness
from vaultharness.errors import BackendRejected, RecoverableConflict

logger = logging.getLogger(__name__)

DELETED_BUT_RECOVERABLE = "ObjectIsDeletedButRecoverable"
BEING_DELETED = "ObjectIsBeingDeleted"

RECOVERABLE_CODES = (DELETED_BUT_RECOVERABLE, BEING_DELETED)


def error_code(exc: HttpResponseError) -> str | None:
    """Most specific error code of a Key Vault error response."""
    error = getattr(exc, "error", None)
    inner = getattr(error, "innererror", None) or {}
    if isinstance(inner, dict) and inner.get("code"):
        return inner["code"]

    # Some responses only mention the condition in the message
    for code in RECOVERABLE_CODES:
        if code in str(exc):
            return code

    return getattr(error, "code", None)


class AzureHarness(VaultHarness):
    """Harness for Azure Key Vault secrets."""

    BACKEND = VaultBackend.AZURE

    REQUIRED_ENV = (
        "AZURE_TENANT_ID",
        "AZURE_CLIENT_ID",
        "AZURE_CLIENT_SECRET",
        "AZURE_VAULT_URI",
    )

    def __init__(self, settings=None, config=None):
        super().__init__(settings, config)
        self.credential: ClientSecretCredential | None = None
        self.sm: SecretClient | None = None

    def _setup(self, env: dict[str, str]) -> None:
        uri = env["AZURE_VAULT_URI"]

        self.config = {
            "location": "eastus",
            "type": "secrets",
            "vault_uri": uri,
        }

        self.credential = ClientSecretCredential(
            tenant_id=env["AZURE_TENANT_ID"],
            client_id=env["AZURE_CLIENT_ID"],
            client_secret=env["AZURE_CLIENT_SECRET"],
        )
        self.sm = SecretClient(vault_url=uri, credential=self.credential)

    def _teardown(self) -> None:
        self._release("secret client", self.sm)
        self._release("credential", self.credential)
        self.sm = None
        self.credential = None

    def _create_secret(self, secret: str, value: str, opts: dict[str, Any]) -> None:
        self._write(secret, value, opts, "create")
        return None

    # Key Vault has no in-place update: writing a secret again adds a new
    # version, so an update is another create.
    def _update_secret(self, secret: str, value: str, opts: dict[str, Any]) -> str | None:
        result = self._write(secret, value, opts, "update")
        return result.properties.version

    def _delete_secret(self, secret: str) -> None:
        try:
            self.sm.begin_delete_secret(secret)
        except ResourceNotFoundError:
            logger.debug(f"azure secret {secret} is already deleted")
        except HttpResponseError as e:
            raise BackendRejected(
                self.name, "delete", e.message or str(e), status=e.status_code, code=error_code(e)
            ) from e
        except AzureError as e:
            raise self._rejected("delete", str(e)) from e

    def _write(self, secret: str, value: str, opts: dict[str, Any], operation: str) -> KeyVaultSecret:
        policy = self.retry_policy(
            success=lambda res: res is not None and res.value is not None,
            recoverable=lambda exc: isinstance(exc, RecoverableConflict),
            remediate=lambda exc: self._remediate(secret, exc),
        )
        result = self._eventually(lambda: self._set(secret, value, opts, operation), policy)

        if not result.properties.enabled:
            raise self._rejected(operation, f"secret {secret} was written disabled")
        return result

    def _set(self, secret: str, value: str, opts: dict[str, Any], operation: str) -> KeyVaultSecret:
        try:
            return self.sm.set_secret(secret, envelope.encode(value), **opts)
        except HttpResponseError as e:
            code = error_code(e)
            error_class = RecoverableConflict if code in RECOVERABLE_CODES else BackendRejected
            raise error_class(
                self.name, operation, e.message or str(e), status=e.status_code, code=code
            ) from e
        except AzureError as e:
            raise self._rejected(operation, str(e)) from e

    def _remediate(self, secret: str, exc: BaseException) -> None:
        # A secret still being deleted cannot be purged yet; just wait
        if getattr(exc, "code", None) != DELETED_BUT_RECOVERABLE:
            return

        logger.warning(f"azure secret {secret} is deleted but recoverable, purging")
        try:
            self.sm.purge_deleted_secret(secret)
        except HttpResponseError as e:
            # The next write attempt reports whatever still blocks the name
            logger.warning(f"azure purge of {secret} failed: {e}")
        except AzureError as e:
            raise self._rejected("purge", str(e)) from e
