"""
Host facts and preconditions.

Snapshots the process (effective uid, ``SUDO_USER``) and the OS release
descriptor, then decides whether provisioning may proceed. Nothing here
mutates the host.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from workstation.core.models.config import TargetOS
from workstation.core.models.host import HostFacts

logger = logging.getLogger(__name__)


def parse_os_release(text: str) -> dict[str, str]:
    """Parse an os-release(5) document into a dict.

    Blank lines and ``#`` comments are ignored; values may be bare,
    double-quoted or single-quoted.
    """
    fields: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        fields[key.strip()] = value
    return fields


def read_host_facts(
    os_release_path: str | Path = "/etc/os-release",
    environ: Mapping[str, str] | None = None,
    euid: int | None = None,
) -> HostFacts:
    """Take the environment snapshot used by the precondition check.

    Args:
        os_release_path: OS release descriptor to read.
        environ: Environment to read ``SUDO_USER`` from (default: os.environ).
        euid: Effective uid override (default: ``os.geteuid()``).
    """
    env = os.environ if environ is None else environ
    path = Path(os_release_path)

    facts = HostFacts(
        euid=os.geteuid() if euid is None else euid,
        sudo_user=env.get("SUDO_USER") or None,
        os_release_path=str(path),
    )

    try:
        facts.os_release = parse_os_release(path.read_text(encoding="utf-8"))
        facts.os_release_found = True
    except FileNotFoundError:
        logger.debug("No OS release descriptor at %s", path)
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)

    return facts


def check_preconditions(facts: HostFacts, target: TargetOS) -> list[str]:
    """Return the reasons provisioning must not start (empty = go)."""
    if not facts.is_root:
        return ["This command must be run as root."]

    if not facts.os_release_found:
        return [f"Cannot determine OS version: {facts.os_release_path} not found."]

    if facts.os_name != target.name or not facts.version_id.startswith(target.version_prefix):
        return [
            f"This workstation setup targets {target.label} LTS. "
            f"Detected: {facts.os_name} {facts.version_id}".rstrip()
        ]

    logger.info("Confirmed %s environment.", target.label)
    return []
