"""Shared fixtures for vaultharness tests."""

import pytest

from vaultharness.config import HarnessSettings

BACKEND_ENV = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AZURE_VAULT_URI",
    "GCP_SERVICE_ACCOUNT",
)


class FakeClock:
    """Monotonic clock advanced only by sleep() and tick()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def tick(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials and harness settings out of the tests."""
    for var in BACKEND_ENV:
        monkeypatch.delenv(var, raising=False)
    for var in (
        "VAULTHARNESS_RETRY_TIMEOUT",
        "VAULTHARNESS_RETRY_INTERVAL",
        "VAULTHARNESS_TEST_VAULT_URL",
        "VAULTHARNESS_TEST_VAULT_IN_PROCESS",
        "VAULTHARNESS_GCP_ENDPOINT",
        "VAULTHARNESS_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def settings():
    return HarnessSettings(
        retry_timeout=360,
        retry_interval=5,
        test_vault_in_process=True,
        gcp_endpoint="https://secretmanager.test/v1",
    )


@pytest.fixture()
def use_clock(clock):
    """Attach the fake clock to a harness."""
    def attach(harness):
        harness.clock = clock
        harness.sleep = clock.sleep
        return harness
    return attach
