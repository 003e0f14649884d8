"""
GRUB adapter: OS detection, defaults file edits, menu regeneration and
default entry selection.

Paths are action params, so tests run every operation against fixture
files and a stand-in for the GRUB binaries.
"""

from __future__ import annotations

import logging
import shlex
import shutil
from pathlib import Path

from workstation.adapters.base import Adapter, ExecutionContext
from workstation.adapters.shell.runner import CommandResult, run_command
from workstation.core.models.action import Receipt
from workstation.core.services.grub_config import (
    count_assignments,
    find_menu_entry,
    read_keys,
    upsert_keys,
)

logger = logging.getLogger(__name__)

_VALID_OPS = {"probe", "set-keys", "update", "set-default-entry"}


class GrubAdapter(Adapter):
    """Bootloader configuration.

    Action params:
        operation (str): One of 'probe', 'set-keys', 'update', 'set-default-entry'.
        path (str): Defaults file (for 'set-keys').
        keys (dict[str, str]): Assignments to upsert (for 'set-keys').
        menu_file (str): Generated grub.cfg (for 'set-default-entry').
        prefix (str): Menu title prefix to look for (for 'set-default-entry').
        fallback_label (str): Name of the entry left as default when
            nothing matches; only used in the skip message.
    """

    @property
    def name(self) -> str:
        return "grub"

    def is_available(self) -> bool:
        return shutil.which("update-grub") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.param("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"
        if operation not in _VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_VALID_OPS))}"

        if operation == "set-keys":
            if not context.param("path"):
                return False, "Missing required param: 'path' for set-keys operation"
            if not context.param("keys"):
                return False, "Missing required param: 'keys' for set-keys operation"

        if operation == "set-default-entry":
            for key in ("menu_file", "prefix"):
                if not context.param(key):
                    return False, f"Missing required param: '{key}' for set-default-entry operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.param("operation")
        try:
            if operation == "probe":
                return self._probe(context)
            elif operation == "set-keys":
                return self._set_keys(context)
            elif operation == "update":
                return self._from_command(
                    context, run_command(["update-grub"], timeout=context.timeout)
                )
            elif operation == "set-default-entry":
                return self._set_default_entry(context)
            else:
                return Receipt.failure(
                    adapter=self.name,
                    action_id=context.action.id,
                    error=f"Unknown operation: {operation}",
                )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"GRUB {operation} failed: {e}",
                metadata={"operation": operation},
            )

    # ── Operations ──────────────────────────────────────────────

    def _probe(self, ctx: ExecutionContext) -> Receipt:
        result = run_command(["os-prober"], timeout=ctx.timeout)
        if result.ok:
            found = [line for line in result.stdout_text.splitlines() if line.strip()]
            for line in found:
                logger.info("os-prober: %s", line)
            return self._from_command(ctx, result, systems_found=len(found))
        return self._from_command(ctx, result)

    def _set_keys(self, ctx: ExecutionContext) -> Receipt:
        path = Path(ctx.param("path"))
        keys: dict[str, str] = ctx.param("keys")

        original = path.read_text(encoding="utf-8") if path.is_file() else ""
        updated = upsert_keys(original, keys)
        problems = _unsettled_keys(updated, keys)
        if problems:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Refusing to write {path}: " + "; ".join(problems),
                metadata={"path": str(path), "keys": dict(keys)},
            )
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(updated, encoding="utf-8")

        summary = ", ".join(f"{k}={v}" for k, v in keys.items())
        logger.info("Configured %s: %s", path, summary)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=summary,
            metadata={"path": str(path), "keys": dict(keys), "changed": updated != original},
        )

    def _set_default_entry(self, ctx: ExecutionContext) -> Receipt:
        menu_file = Path(ctx.param("menu_file"))
        prefix: str = ctx.param("prefix")
        fallback: str = ctx.param("fallback_label", "the current entry")

        cfg_text = menu_file.read_text(encoding="utf-8") if menu_file.is_file() else ""
        entry = find_menu_entry(cfg_text, prefix)

        if entry is None:
            reason = f"{prefix} not found in {menu_file.name}; default remains {fallback}."
            logger.info(reason)
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=reason,
                metadata={"menu_file": str(menu_file), "prefix": prefix},
            )

        result = run_command(["grub-set-default", entry], timeout=ctx.timeout)
        if result.ok:
            logger.info("Set default boot entry to '%s'.", entry)
        return self._from_command(ctx, result, entry=entry, output=f"Default boot entry: {entry}")

    # ── Helpers ─────────────────────────────────────────────────

    def _from_command(
        self,
        ctx: ExecutionContext,
        result: CommandResult,
        output: str | None = None,
        **meta,
    ) -> Receipt:
        metadata = {
            "command": shlex.join(result.argv),
            "return_code": result.returncode,
            **meta,
        }
        if result.ok:
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=result.stdout_text if output is None else output,
                duration_ms=result.elapsed_ms,
                metadata=metadata,
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=ctx.action.id,
            error=result.describe_failure(),
            duration_ms=result.elapsed_ms,
            metadata=metadata,
        )


def _unsettled_keys(text: str, keys: dict[str, str]) -> list[str]:
    """Keys that are not assigned exactly once, to the wanted value, in ``text``."""
    active = read_keys(text)
    problems = []
    for key, value in keys.items():
        count = count_assignments(text, key)
        wanted = read_keys(f"{key}={value}").get(key)
        if count != 1:
            problems.append(f"{key} assigned {count} times")
        elif active.get(key) != wanted:
            problems.append(f"{key} reads {active.get(key)!r}, expected {wanted!r}")
    return problems
