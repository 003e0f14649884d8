"""
Tests for domain models: actions, receipts, host facts, steps, state.
"""

import pytest
from pydantic import ValidationError

from workstation.core.models import (
    Action,
    GeneratedFile,
    HostFacts,
    ProvisionState,
    ProvisionStep,
    Receipt,
    WorkstationConfig,
)


class TestReceipt:
    def test_success(self):
        r = Receipt.success(adapter="apt", action_id="a", output="done")
        assert r.ok and not r.failed and not r.skipped
        assert r.error is None

    def test_failure(self):
        r = Receipt.failure(adapter="apt", action_id="a", error="E: broken")
        assert r.failed
        assert r.error == "E: broken"

    def test_skip_reason_is_output(self):
        r = Receipt.skip(adapter="grub", action_id="a", reason="nothing to do")
        assert r.skipped
        assert r.output == "nothing to do"

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            Receipt(adapter="apt", action_id="a", status="maybe")

    def test_timestamps(self):
        r = Receipt.success(adapter="apt", action_id="a")
        assert r.started_at.endswith("+00:00")


class TestAction:
    def test_defaults(self):
        a = Action(id="packages:update-index", adapter="apt")
        assert a.params == {}
        assert not a.best_effort
        assert a.skip_reason is None


class TestProvisionStep:
    def test_add_stamps_step(self):
        step = ProvisionStep(name="packages")
        action = step.add(Action(id="packages:x", adapter="apt"))
        assert action.step == "packages"
        assert step.action_count == 1
        assert not action.best_effort

    def test_best_effort_step_marks_actions(self):
        step = ProvisionStep(name="extension", best_effort=True)
        assert step.add(Action(id="extension:install", adapter="shell")).best_effort


class TestHostFacts:
    def test_root(self):
        assert HostFacts(euid=0).is_root
        assert not HostFacts(euid=1000).is_root

    def test_release_fields(self):
        facts = HostFacts(euid=0, os_release={"NAME": "Ubuntu", "VERSION_ID": "22.04"})
        assert facts.os_name == "Ubuntu"
        assert facts.version_id == "22.04"

    def test_unknown_release(self):
        assert HostFacts(euid=0).os_name == ""


class TestProvisionState:
    def test_set_step_state_creates_and_updates(self):
        state = ProvisionState()
        state.set_step_state("packages", status="ok", actions_total=10)
        state.set_step_state("packages", status="failed")
        assert state.steps["packages"].status == "failed"
        assert state.steps["packages"].actions_total == 10

    def test_touch(self):
        state = ProvisionState(updated_at="2000-01-01T00:00:00+00:00")
        state.touch()
        assert state.updated_at != "2000-01-01T00:00:00+00:00"


class TestGeneratedFile:
    def test_executable_by_default(self):
        assert GeneratedFile(path="/usr/local/bin/gcc", content="").mode == 0o755


class TestWorkstationConfig:
    def test_defaults(self):
        config = WorkstationConfig()
        assert config.target.label == "Ubuntu 22.04"
        assert config.packages.compilers == ["gcc-11", "g++-11"]
        assert config.wrappers.bin_dir == "/usr/local/bin"
        assert config.grub.keys["GRUB_TIMEOUT"] == "15"
        assert config.command_timeout is None

    def test_output_name_must_be_plain_file_name(self):
        for bad in ("out$(id)", "a`b`", "bin/out", "two words", ""):
            with pytest.raises(ValidationError):
                WorkstationConfig.model_validate({"wrappers": {"output_name": bad}})
        config = WorkstationConfig.model_validate({"wrappers": {"output_name": "sol.bin"}})
        assert config.wrappers.output_name == "sol.bin"

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            WorkstationConfig.model_validate({"grub": {"timeout": 15}})

    def test_invalid_key_method(self):
        with pytest.raises(ValidationError):
            WorkstationConfig.model_validate({
                "packages": {"repositories": [
                    {"name": "x", "key_url": "https://x", "key_method": "curl", "source": "deb x"},
                ]},
            })
