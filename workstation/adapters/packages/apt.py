"""
APT adapter: package index, package installs, third-party repositories.

Signing keys are downloaded and registered exactly as published: there
is no fingerprint pinning. Every fetch logs a warning naming the URL so
the trust decision stays visible in the run log.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import urllib.request
from pathlib import Path

from workstation.adapters.base import Adapter, ExecutionContext
from workstation.adapters.shell.runner import CommandResult, run_command
from workstation.core.models.action import Receipt

logger = logging.getLogger(__name__)

_VALID_OPS = {"update", "install", "add-key", "add-repository"}
_KEY_METHODS = {"apt-key", "keyring"}
_SOURCE_METHODS = {"add-apt-repository", "list-file"}

_NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


def fetch_key(url: str, timeout: int | None = None) -> bytes:
    """Download a repository signing key.

    Raises:
        OSError: On any network or HTTP error (urllib's errors subclass it).
    """
    req = urllib.request.Request(url, headers={"User-Agent": "workstation-provisioner"})
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return resp.read()


class AptAdapter(Adapter):
    """Package management through apt-get and friends.

    Action params:
        operation (str): One of 'update', 'install', 'add-key', 'add-repository'.
        packages (list[str]): Packages to install (for 'install').
        name (str): Repository name, used for key and list file names.
        url (str): Signing key URL (for 'add-key').
        method (str): 'apt-key' | 'keyring' (for 'add-key'),
            'add-apt-repository' | 'list-file' (for 'add-repository').
        keys_dir (str): Trusted keyring directory (for 'add-key' via 'keyring').
        source (str): APT source line (for 'add-repository').
        sources_dir (str): Source list directory (for 'list-file').
    """

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.param("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"
        if operation not in _VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_VALID_OPS))}"

        if operation == "install" and not context.param("packages"):
            return False, "Missing required param: 'packages' for install operation"

        if operation == "add-key":
            for key in ("name", "url"):
                if not context.param(key):
                    return False, f"Missing required param: '{key}' for add-key operation"
            if context.param("method", "keyring") not in _KEY_METHODS:
                return False, f"Unknown key method '{context.param('method')}'"

        if operation == "add-repository":
            for key in ("name", "source"):
                if not context.param(key):
                    return False, f"Missing required param: '{key}' for add-repository operation"
            if context.param("method", "list-file") not in _SOURCE_METHODS:
                return False, f"Unknown source method '{context.param('method')}'"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.param("operation")
        try:
            if operation == "update":
                return self._from_command(
                    context, run_command(["apt-get", "update"], timeout=context.timeout)
                )
            elif operation == "install":
                return self._install(context)
            elif operation == "add-key":
                return self._add_key(context)
            elif operation == "add-repository":
                return self._add_repository(context)
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
                error=f"{operation} failed: {e}",
                metadata={"operation": operation},
            )

    # ── Operations ──────────────────────────────────────────────

    def _install(self, ctx: ExecutionContext) -> Receipt:
        packages: list[str] = ctx.param("packages")
        result = run_command(
            ["apt-get", "install", "-y", *packages],
            env_overrides=_NONINTERACTIVE,
            timeout=ctx.timeout,
        )
        return self._from_command(ctx, result, packages=packages)

    def _add_key(self, ctx: ExecutionContext) -> Receipt:
        name: str = ctx.param("name")
        url: str = ctx.param("url")
        method: str = ctx.param("method", "keyring")

        logger.warning(
            "Trusting signing key for '%s' from %s without fingerprint verification",
            name, url,
        )
        key = fetch_key(url, timeout=ctx.timeout)

        if method == "apt-key":
            result = run_command(["apt-key", "add", "-"], input=key, timeout=ctx.timeout)
            return self._from_command(ctx, result, key_url=url, method=method)

        result = run_command(["gpg", "--dearmor"], input=key, timeout=ctx.timeout)
        if not result.ok:
            return self._from_command(ctx, result, key_url=url, method=method)

        keyring = Path(ctx.param("keys_dir", "/etc/apt/trusted.gpg.d")) / f"{name}.gpg"
        keyring.parent.mkdir(parents=True, exist_ok=True)
        keyring.write_bytes(result.stdout)
        os.chmod(keyring, 0o644)

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Installed keyring {keyring}",
            duration_ms=result.elapsed_ms,
            metadata={"key_url": url, "method": method, "path": str(keyring)},
        )

    def _add_repository(self, ctx: ExecutionContext) -> Receipt:
        name: str = ctx.param("name")
        source: str = ctx.param("source")
        method: str = ctx.param("method", "list-file")

        if method == "add-apt-repository":
            result = run_command(["apt-add-repository", "-y", source], timeout=ctx.timeout)
            return self._from_command(ctx, result, source=source, method=method)

        list_file = Path(ctx.param("sources_dir", "/etc/apt/sources.list.d")) / f"{name}.list"
        list_file.parent.mkdir(parents=True, exist_ok=True)
        list_file.write_text(source + "\n", encoding="utf-8")

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Wrote {list_file}",
            metadata={"source": source, "method": method, "path": str(list_file)},
        )

    # ── Helpers ─────────────────────────────────────────────────

    def _from_command(self, ctx: ExecutionContext, result: CommandResult, **meta) -> Receipt:
        metadata = {
            "command": shlex.join(result.argv),
            "return_code": result.returncode,
            **meta,
        }
        if result.ok:
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=result.stdout_text,
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
