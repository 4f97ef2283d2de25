"""
AWS Secrets Manager harness.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import uuid
from types import MappingProxyType
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from vaultharness import envelope
from vaultharness.base import VaultBackend, VaultHarness
from vaultharness.errors import BackendRejected

logger = logging.getLogger(__name__)


class AWSHarness(VaultHarness):
    """Harness for AWS Secrets Manager."""

    BACKEND = VaultBackend.AWS

    DEFAULT_CONFIG = MappingProxyType({
        "region": "us-east-1",
    })

    REQUIRED_ENV = ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY")

    def __init__(self, settings=None, config=None):
        super().__init__(settings, config)
        # boto3 session and secrets manager client
        self.session: boto3.session.Session | None = None
        self.sm = None

    def _setup(self, env: dict[str, str]) -> None:
        self._require_config("region")
        self.session = boto3.session.Session(
            aws_access_key_id=env["AWS_ACCESS_KEY_ID"],
            aws_secret_access_key=env["AWS_SECRET_ACCESS_KEY"],
        )
        self.sm = self.session.client("secretsmanager", region_name=self.config["region"])

    def _teardown(self) -> None:
        self._release("secrets manager client", self.sm)
        self.sm = None
        self.session = None

    def _create_secret(self, secret: str, value: str, opts: dict[str, Any]) -> str:
        res = self._call(
            "create",
            "create_secret",
            ClientRequestToken=str(uuid.uuid4()),
            Name=secret,
            SecretString=envelope.encode(value),
            **opts,
        )
        return res["ARN"]

    def _update_secret(self, secret: str, value: str, opts: dict[str, Any]) -> str | None:
        res = self._call(
            "update",
            "put_secret_value",
            ClientRequestToken=str(uuid.uuid4()),
            SecretId=secret,
            SecretString=envelope.encode(value),
            **opts,
        )
        return res.get("VersionId")

    def _delete_secret(self, secret: str) -> None:
        # Skip the recovery window so the name can be reused by a later create
        self._call(
            "delete",
            "delete_secret",
            SecretId=secret,
            ForceDeleteWithoutRecovery=True,
        )

    def _call(self, operation: str, method: str, **params) -> dict[str, Any]:
        """Invoke a secrets manager API call and check its status."""
        try:
            res = getattr(self.sm, method)(**params)
        except ClientError as e:
            error = e.response.get("Error", {})
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            raise BackendRejected(
                self.name,
                operation,
                error.get("Message", str(e)),
                status=status,
                code=error.get("Code"),
            ) from e
        except BotoCoreError as e:
            raise self._rejected(operation, str(e)) from e

        status = res.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
        if status != 200:
            raise self._rejected(operation, f"unexpected response to {method}", status=status)

        logger.debug(f"aws {method} {params.get('Name') or params.get('SecretId')}: {status}")
        return res
