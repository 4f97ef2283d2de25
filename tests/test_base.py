"""Tests for the harness lifecycle and created-secret tracking."""

from types import MappingProxyType

import pytest

from vaultharness.base import HarnessState, VaultBackend, VaultHarness
from vaultharness.config import HarnessSettings
from vaultharness.errors import BackendRejected, FatalSetupError, HarnessStateError


class RecordingHarness(VaultHarness):
    """Harness double that records hook calls."""

    BACKEND = VaultBackend.TEST
    DEFAULT_CONFIG = MappingProxyType({"region": "nowhere", "nested": {"a": 1}})
    REQUIRED_ENV = ("RECORDING_TOKEN",)

    def __init__(self, settings=None, config=None):
        super().__init__(settings, config)
        self.calls = []
        self.client = None
        self.fail_create = False
        self.fail_close = False

    def _setup(self, env):
        self.calls.append(("setup", env))
        self.client = object()

    def _teardown(self):
        self.calls.append(("teardown",))
        if self.fail_close:
            raise RuntimeError("close failed")
        self.client = None

    def _create_secret(self, secret, value, opts):
        self.calls.append(("create", secret, value, opts))
        if self.fail_create:
            raise BackendRejected(self.name, "create", "nope", status=500)
        return None

    def _update_secret(self, secret, value, opts):
        self.calls.append(("update", secret, value, opts))
        return "v2"

    def _delete_secret(self, secret):
        self.calls.append(("delete", secret))


@pytest.fixture()
def harness(settings, monkeypatch):
    monkeypatch.setenv("RECORDING_TOKEN", "t0k3n")
    return RecordingHarness(settings)


class TestDefinition:

    def test_instance_config_is_a_copy(self, harness):
        harness.config["region"] = "elsewhere"
        harness.config["nested"]["a"] = 2

        assert RecordingHarness.DEFAULT_CONFIG["region"] == "nowhere"
        assert RecordingHarness.DEFAULT_CONFIG["nested"]["a"] == 1

    def test_default_config_is_read_only(self):
        with pytest.raises(TypeError):
            RecordingHarness.DEFAULT_CONFIG["region"] = "x"

    def test_config_overrides_merge_onto_defaults(self, settings):
        harness = RecordingHarness(settings, config={"region": "eu-west-1", "extra": True})

        assert harness.config == {"region": "eu-west-1", "nested": {"a": 1}, "extra": True}

    def test_instances_do_not_share_state(self, settings, monkeypatch):
        monkeypatch.setenv("RECORDING_TOKEN", "t")
        first, second = RecordingHarness(settings), RecordingHarness(settings)
        first.setup()
        first.create_secret("a", "1")

        assert second.secrets == []
        assert second.state == HarnessState.UNINITIALIZED


class TestSetup:

    def test_setup_passes_required_env(self, harness):
        harness.setup()

        assert harness.calls == [("setup", {"RECORDING_TOKEN": "t0k3n"})]
        assert harness.state == HarnessState.CONFIGURED

    def test_missing_env_is_fatal_and_builds_no_client(self, settings, monkeypatch):
        monkeypatch.delenv("RECORDING_TOKEN", raising=False)
        harness = RecordingHarness(settings)

        with pytest.raises(FatalSetupError, match="RECORDING_TOKEN") as exc_info:
            harness.setup()

        assert exc_info.value.missing == "RECORDING_TOKEN"
        assert harness.calls == []
        assert harness.client is None

    def test_empty_env_counts_as_missing(self, settings, monkeypatch):
        monkeypatch.setenv("RECORDING_TOKEN", "")

        with pytest.raises(FatalSetupError):
            RecordingHarness(settings).setup()

    def test_setup_runs_only_once(self, harness):
        harness.setup()

        with pytest.raises(HarnessStateError):
            harness.setup()

    def test_failed_setup_cannot_be_retried(self, settings, monkeypatch):
        monkeypatch.delenv("RECORDING_TOKEN", raising=False)
        harness = RecordingHarness(settings)
        with pytest.raises(FatalSetupError):
            harness.setup()

        monkeypatch.setenv("RECORDING_TOKEN", "late")
        with pytest.raises(HarnessStateError):
            harness.setup()

    def test_unexpected_setup_error_becomes_fatal(self, harness, monkeypatch):
        def broken(env):
            raise ConnectionError("no route to host")

        monkeypatch.setattr(harness, "_setup", broken)

        with pytest.raises(FatalSetupError, match="no route to host") as exc_info:
            harness.setup()
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_invalid_settings_are_fatal(self, monkeypatch):
        monkeypatch.setenv("RECORDING_TOKEN", "t")
        harness = RecordingHarness(HarnessSettings(retry_interval=0))

        with pytest.raises(FatalSetupError, match="Retry interval"):
            harness.setup()


class TestOperations:

    @pytest.mark.parametrize("call", [
        lambda h: h.create_secret("s", "v"),
        lambda h: h.update_secret("s", "v"),
        lambda h: h.delete_secret("s"),
    ])
    def test_operations_require_setup(self, harness, call):
        with pytest.raises(HarnessStateError, match="setup"):
            call(harness)
        assert harness.calls == []

    def test_operations_after_teardown_are_rejected(self, harness):
        harness.setup()
        harness.teardown()

        with pytest.raises(HarnessStateError):
            harness.create_secret("s", "v")

    def test_first_operation_activates(self, harness):
        harness.setup()
        harness.update_secret("s", "v")

        assert harness.state == HarnessState.ACTIVE

    def test_create_records_in_call_order(self, harness):
        harness.setup()
        harness.create_secret("b", "1")
        harness.create_secret("a", "2")
        harness.create_secret("c", "3")

        assert harness.secrets == ["b", "a", "c"]

    def test_recreate_after_delete_is_recorded_twice(self, harness):
        harness.setup()
        harness.create_secret("s", "1")
        harness.delete_secret("s")
        harness.create_secret("s", "2")

        assert harness.secrets == ["s", "s"]

    def test_failed_create_is_not_recorded(self, harness):
        harness.setup()
        harness.fail_create = True

        with pytest.raises(BackendRejected):
            harness.create_secret("s", "v")

        assert harness.secrets == []

    def test_update_and_delete_do_not_record(self, harness):
        harness.setup()
        assert harness.update_secret("s", "v") == "v2"
        harness.delete_secret("s")

        assert harness.secrets == []

    def test_opts_default_to_empty_dict(self, harness):
        harness.setup()
        harness.create_secret("s", "v")
        harness.update_secret("s", "v", {"ttl": 5})

        assert harness.calls[1] == ("create", "s", "v", {})
        assert harness.calls[2] == ("update", "s", "v", {"ttl": 5})

    def test_fixtures_default_to_none(self, harness):
        assert harness.fixtures() is None


class TestTeardown:

    def test_teardown_without_setup(self, harness):
        harness.teardown()

        assert harness.state == HarnessState.TORN_DOWN
        assert harness.calls == [("teardown",)]

    def test_teardown_is_idempotent(self, harness):
        harness.setup()
        harness.teardown()
        harness.teardown()

        assert harness.calls.count(("teardown",)) == 1

    def test_teardown_errors_are_recorded_not_raised(self, harness):
        harness.setup()
        harness.fail_close = True

        harness.teardown()

        assert harness.state == HarnessState.TORN_DOWN
        assert len(harness.teardown_errors) == 1
        assert "close failed" in str(harness.teardown_errors[0])

    def test_release_records_close_failures(self, harness):
        class Handle:
            def close(self):
                raise OSError("socket already closed")

        harness._release("handle", Handle())
        harness._release("nothing", None)

        assert len(harness.teardown_errors) == 1

    def test_context_manager_tears_down_on_error(self, harness):
        with pytest.raises(BackendRejected):
            with harness:
                harness.fail_create = True
                harness.create_secret("s", "v")

        assert harness.state == HarnessState.TORN_DOWN

    def test_teardown_failure_does_not_mask_test_failure(self, harness):
        with pytest.raises(AssertionError, match="value mismatch"):
            with harness:
                harness.fail_close = True
                raise AssertionError("value mismatch")

        assert len(harness.teardown_errors) == 1


def test_retry_policy_uses_settings(harness):
    policy = harness.retry_policy()

    assert policy.timeout == 360
    assert policy.interval == 5
    assert harness.retry_policy(timeout=10).timeout == 10


def test_repr_names_backend(harness):
    assert "test" in repr(harness)
    assert "uninitialized" in repr(harness)
