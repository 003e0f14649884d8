"""
Tests for CLI commands: check, plan, wrappers, grub-entry, status, provision.
"""

import json
import textwrap
from pathlib import Path

from click.testing import CliRunner

from workstation.core.models.state import ProvisionState
from workstation.core.persistence.state_file import default_state_path, save_state
from workstation.main import cli


def _write_config(tmp_path: Path, os_release: Path, state_dir: Path | None = None) -> Path:
    content = textwrap.dedent(f"""\
        workstation:
          paths:
            os_release: {os_release}
            state_dir: {state_dir or tmp_path / "state"}
    """)
    config = tmp_path / "workstation.yml"
    config.write_text(content)
    return config


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Contest workstation provisioner" in result.output
        for command in ("provision", "check", "plan", "wrappers", "grub-entry", "status"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "nope.yml"), "plan"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestCheckCommand:
    def test_missing_os_release_fails(self, tmp_path: Path):
        config = _write_config(tmp_path, tmp_path / "os-release")
        result = CliRunner().invoke(cli, ["--config", str(config), "check"])
        assert result.exit_code == 1
        assert "❌" in result.output

    def test_json(self, tmp_path: Path, fixtures_dir: Path):
        config = _write_config(tmp_path, fixtures_dir / "os-release-noble")
        result = CliRunner().invoke(cli, ["-q", "--config", str(config), "check", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["passed"] is False
        assert data["host"]["version_id"] == "24.04"
        assert data["target"] == "Ubuntu 22.04"
        assert data["tools"]["filesystem"] is True
        assert set(data["tools"]) == {"apt", "filesystem", "grub", "shell"}


class TestPlanCommand:
    def test_lists_steps(self, tmp_path: Path, fixtures_dir: Path):
        config = _write_config(tmp_path, fixtures_dir / "os-release-jammy")
        result = CliRunner().invoke(cli, ["--config", str(config), "plan"])
        assert result.exit_code == 0
        assert "1. packages" in result.output
        assert "2. extension (best-effort)" in result.output
        assert "4. bootloader" in result.output

    def test_json(self, tmp_path: Path, fixtures_dir: Path):
        config = _write_config(tmp_path, fixtures_dir / "os-release-jammy")
        result = CliRunner().invoke(cli, ["-q", "--config", str(config), "plan", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [s["name"] for s in data["steps"]] == ["packages", "extension", "wrappers", "bootloader"]
        assert data["total_actions"] == 19


class TestWrappersCommand:
    def test_writes_wrappers(self, tmp_path: Path, fixtures_dir: Path):
        config = _write_config(tmp_path, fixtures_dir / "os-release-jammy")
        bin_dir = tmp_path / "bin"
        result = CliRunner().invoke(
            cli, ["--config", str(config), "wrappers", "--bin-dir", str(bin_dir)]
        )
        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in bin_dir.iterdir()) == ["build", "g++", "gcc"]
        assert (bin_dir / "gcc").stat().st_mode & 0o777 == 0o755
        assert not (tmp_path / "state").exists()

    def test_dry_run(self, tmp_path: Path, fixtures_dir: Path):
        config = _write_config(tmp_path, fixtures_dir / "os-release-jammy")
        bin_dir = tmp_path / "bin"
        result = CliRunner().invoke(
            cli, ["--config", str(config), "wrappers", "--bin-dir", str(bin_dir), "--dry-run"]
        )
        assert result.exit_code == 0
        assert "[dry-run]" in result.output
        assert not bin_dir.exists()


class TestGrubEntryCommand:
    def test_windows_entry(self, fixtures_dir: Path):
        result = CliRunner().invoke(cli, ["grub-entry", str(fixtures_dir / "grub-windows.cfg")])
        assert result.exit_code == 0
        assert result.output.strip() == "Windows Boot Manager (on /dev/nvme0n1p1)"

    def test_not_found(self, fixtures_dir: Path):
        result = CliRunner().invoke(cli, ["grub-entry", str(fixtures_dir / "grub-linux-only.cfg")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_custom_prefix(self, fixtures_dir: Path):
        result = CliRunner().invoke(
            cli, ["grub-entry", str(fixtures_dir / "grub-linux-only.cfg"), "--prefix", "Ubuntu"]
        )
        assert result.exit_code == 0
        assert result.output.strip() == "Ubuntu"

    def test_unreadable(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["grub-entry", str(tmp_path / "grub.cfg")])
        assert result.exit_code == 1
        assert "Cannot read" in result.output


class TestStatusCommand:
    def test_no_runs(self, tmp_state_dir: Path):
        result = CliRunner().invoke(cli, ["status", "--state-dir", str(tmp_state_dir)])
        assert result.exit_code == 0
        assert "No provisioning run recorded yet." in result.output

    def test_last_run(self, tmp_state_dir: Path):
        state = ProvisionState(hostname="lab-07", target="Ubuntu 22.04")
        state.last_run.operation_id = "op-20240101-000000-abcdef"
        state.last_run.status = "ok"
        state.set_step_state("bootloader", status="ok")
        state.default_boot_entry = "Windows Boot Manager (on /dev/sda1)"
        save_state(state, default_state_path(tmp_state_dir))

        result = CliRunner().invoke(cli, ["status", "--state-dir", str(tmp_state_dir)])
        assert result.exit_code == 0
        assert "lab-07" in result.output
        assert "op-20240101-000000-abcdef" in result.output
        assert "bootloader: ok" in result.output
        assert "Windows Boot Manager (on /dev/sda1)" in result.output

    def test_json(self, tmp_state_dir: Path):
        result = CliRunner().invoke(cli, ["-q", "status", "--state-dir", str(tmp_state_dir), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["has_run"] is False
        assert data["history"] == []


class TestProvisionCommand:
    def test_refuses_without_os_release(self, tmp_path: Path):
        config = _write_config(tmp_path, tmp_path / "os-release")
        result = CliRunner().invoke(cli, ["--config", str(config), "provision", "--mock"])
        assert result.exit_code == 1
        assert "❌" in result.output
        assert not (tmp_path / "state").exists()

    def test_refuses_wrong_release(self, tmp_path: Path, fixtures_dir: Path):
        config = _write_config(tmp_path, fixtures_dir / "os-release-debian")
        result = CliRunner().invoke(cli, ["--config", str(config), "provision", "--dry-run"])
        assert result.exit_code == 1
        assert "Result:" not in result.output
