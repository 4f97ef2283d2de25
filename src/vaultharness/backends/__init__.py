"""
Backend-specific vault harnesses.

Supported backends:
- test: local HTTP mock vault
- aws: AWS Secrets Manager
- azure: Azure Key Vault
- gcp: Google Cloud Secret Manager
- hcv: HashiCorp Vault KV

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from vaultharness.backends.local import LocalVaultHarness, LocalVaultMock
from vaultharness.backends.aws import AWSHarness
from vaultharness.backends.azure import AzureHarness
from vaultharness.backends.gcp import GCPHarness
from vaultharness.backends.hcv import HashiCorpVaultHarness

__all__ = [
    "LocalVaultHarness",
    "LocalVaultMock",
    "AWSHarness",
    "AzureHarness",
    "GCPHarness",
    "HashiCorpVaultHarness",
]
