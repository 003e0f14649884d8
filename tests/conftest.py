"""
Shared test fixtures and configuration.
"""

import shutil
from pathlib import Path

import pytest

from workstation.adapters.shell.runner import CommandResult
from workstation.core.models.config import WorkstationConfig
from workstation.core.models.host import HostFacts
from workstation.core.services.host_facts import read_host_facts


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def root_facts(fixtures_dir: Path) -> HostFacts:
    """Root on Ubuntu 22.04, invoked through sudo by 'contestant'."""
    return read_host_facts(
        fixtures_dir / "os-release-jammy",
        environ={"SUDO_USER": "contestant"},
        euid=0,
    )


@pytest.fixture
def sandbox_config(tmp_path: Path, fixtures_dir: Path) -> WorkstationConfig:
    """Default configuration with every host path redirected under tmp_path."""
    grub_dir = tmp_path / "etc" / "default"
    grub_dir.mkdir(parents=True)
    defaults_file = grub_dir / "grub"
    shutil.copy(fixtures_dir / "grub-default", defaults_file)

    boot_dir = tmp_path / "boot" / "grub"
    boot_dir.mkdir(parents=True)
    menu_file = boot_dir / "grub.cfg"
    shutil.copy(fixtures_dir / "grub-windows.cfg", menu_file)

    config = WorkstationConfig()
    config.wrappers.bin_dir = str(tmp_path / "usr" / "local" / "bin")
    config.grub.defaults_file = str(defaults_file)
    config.grub.menu_file = str(menu_file)
    config.packages.trusted_keys_dir = str(tmp_path / "etc" / "apt" / "trusted.gpg.d")
    config.packages.sources_dir = str(tmp_path / "etc" / "apt" / "sources.list.d")
    config.paths.os_release = str(fixtures_dir / "os-release-jammy")
    config.paths.state_dir = str(tmp_path / "var" / "lib" / "workstation")
    return config


@pytest.fixture
def tracer_compiler(tmp_path: Path):
    """Factory for stand-in compilers that record their argv.

    Each tracer writes one argument per line to ``<name>.args`` next to
    itself, creates the file named after ``-o`` and exits with ``status``.
    """

    def make(name: str, status: int = 0) -> tuple[Path, Path]:
        tools = tmp_path / "tools"
        tools.mkdir(exist_ok=True)
        script = tools / name
        log = tools / f"{name}.args"
        script.write_text(
            "#!/bin/bash\n"
            f'printf "%s\\n" "$@" > "{log}"\n'
            "prev=\n"
            'for arg in "$@"; do\n'
            '  if [ "$prev" = "-o" ]; then : > "$arg"; fi\n'
            '  prev="$arg"\n'
            "done\n"
            f"exit {status}\n"
        )
        script.chmod(0o755)
        return script, log

    return make


class FakeRunner:
    """Stand-in for ``run_command``: records every call, answers from canned results."""

    def __init__(self):
        self.calls: list[dict] = []
        self.results: dict[str, CommandResult] = {}

    def respond(self, program: str, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b""):
        self.results[program] = CommandResult(
            argv=[program], returncode=returncode, stdout=stdout, stderr=stderr,
        )

    def __call__(self, argv, **kwargs):
        self.calls.append({"argv": list(argv), **kwargs})
        canned = self.results.get(argv[0])
        if canned is None:
            return CommandResult(argv=list(argv), returncode=0)
        return CommandResult(
            argv=list(argv),
            returncode=canned.returncode,
            stdout=canned.stdout,
            stderr=canned.stderr,
        )

    @property
    def argvs(self) -> list[list[str]]:
        return [c["argv"] for c in self.calls]

    def programs(self) -> list[str]:
        return [c["argv"][0] for c in self.calls]


@pytest.fixture
def fake_commands(monkeypatch) -> FakeRunner:
    """Route every external command and key download to a FakeRunner."""
    runner = FakeRunner()
    for module in (
        "workstation.adapters.shell.command",
        "workstation.adapters.packages.apt",
        "workstation.adapters.boot.grub",
    ):
        monkeypatch.setattr(f"{module}.run_command", runner)
    monkeypatch.setattr(
        "workstation.adapters.packages.apt.fetch_key",
        lambda url, timeout=None: b"ARMORED KEY",
    )
    return runner
