"""
Shell command adapter: run one external command.

Used for the steps that are a single tool invocation: the compiler
version probe and the editor extension install (as the invoking user).
"""

from __future__ import annotations

import logging
import shlex
import shutil

from workstation.adapters.base import Adapter, ExecutionContext
from workstation.adapters.shell.runner import run_command
from workstation.core.models.action import Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Execute a command and capture its output.

    Action params:
        argv (list[str]): The command to execute.
        run_as (str): Run as this user through ``sudo -u`` (optional).
        env (dict[str, str]): Extra environment variables (optional).
        first_line (bool): Keep only the first line of stdout (optional).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.param("argv")
        if not argv:
            return False, "Missing required param: 'argv'"
        if not isinstance(argv, list) or not all(isinstance(a, str) for a in argv):
            return False, "Param 'argv' must be a list of strings"
        if context.param("run_as") and shutil.which("sudo") is None:
            return False, "Param 'run_as' requires sudo, which is not installed"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv: list[str] = context.param("argv")
        run_as = context.param("run_as")

        result = run_command(
            argv,
            env_overrides=context.param("env"),
            run_as=run_as,
            timeout=context.timeout,
        )

        metadata = {
            "command": shlex.join(result.argv),
            "return_code": result.returncode,
        }
        if run_as:
            metadata["run_as"] = run_as

        if not result.ok:
            metadata["stdout"] = result.stdout_text
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=result.describe_failure(),
                duration_ms=result.elapsed_ms,
                metadata=metadata,
            )

        output = result.stdout_text
        if context.param("first_line") and output:
            output = output.splitlines()[0]
        metadata["stderr"] = result.stderr_text

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=output,
            duration_ms=result.elapsed_ms,
            metadata=metadata,
        )
