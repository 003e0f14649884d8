"""
Command runner: the single place where ``subprocess.run`` is called.

Every adapter that touches an external tool (apt, gpg, GRUB, the editor
CLI) goes through ``run_command`` so that privilege de-escalation,
environment overrides, timeouts and logging behave the same everywhere.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Trailing output kept in receipts
_TAIL = 4000


@dataclass
class CommandResult:
    """Outcome of one external command."""

    argv: list[str]
    returncode: int | None = None
    stdout: bytes = b""
    stderr: bytes = b""
    elapsed_ms: int = 0
    error: str | None = None   # set when the command could not run at all
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace").strip()[-_TAIL:]

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace").strip()[-_TAIL:]

    def describe_failure(self) -> str:
        """Human-readable reason this command did not succeed."""
        if self.timed_out:
            return self.error or "Command timed out"
        if self.error:
            return self.error
        return self.stderr_text or f"Command exited with code {self.returncode}"


def with_user(argv: list[str], run_as: str | None) -> list[str]:
    """Prefix ``argv`` so it runs as ``run_as`` (privilege de-escalation)."""
    if not run_as:
        return list(argv)
    return ["sudo", "-u", run_as, *argv]


def run_command(
    argv: list[str],
    *,
    input: bytes | str | None = None,
    env_overrides: dict[str, str] | None = None,
    run_as: str | None = None,
    timeout: int | None = None,
    cwd: str | None = None,
) -> CommandResult:
    """Run ``argv`` to completion and capture its output.

    Args:
        argv: Command and arguments (never passed through a shell).
        input: Data written to the command's stdin.
        env_overrides: Extra environment variables.
        run_as: Run as this user via ``sudo -u``.
        timeout: Seconds before giving up. None waits indefinitely.
        cwd: Working directory.

    Returns:
        CommandResult. Never raises for command failures.
    """
    cmd = with_user(argv, run_as)

    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    if isinstance(input, str):
        input = input.encode("utf-8")

    logger.debug("Running: %s", " ".join(cmd))
    start = time.monotonic()
    result = CommandResult(argv=cmd)

    try:
        proc = subprocess.run(
            cmd,
            input=input,
            capture_output=True,
            env=env,
            cwd=cwd,
            timeout=timeout,
        )
        result.returncode = proc.returncode
        result.stdout = proc.stdout or b""
        result.stderr = proc.stderr or b""
    except subprocess.TimeoutExpired:
        result.timed_out = True
        result.error = f"Command timed out after {timeout}s"
    except FileNotFoundError:
        result.error = f"Command not found: {cmd[0]}"
    except OSError as e:
        result.error = f"Command execution error: {e}"

    result.elapsed_ms = int((time.monotonic() - start) * 1000)

    if not result.ok:
        logger.debug("Command failed (%s): %s", result.returncode, result.describe_failure())
    return result
