"""
Check use case: snapshot the host and evaluate the preconditions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from workstation.core.config.loader import ConfigError, load_config
from workstation.core.models.config import WorkstationConfig
from workstation.core.models.host import HostFacts
from workstation.core.services.host_facts import check_preconditions, read_host_facts


@dataclass
class CheckResult:
    """Outcome of the precondition check."""

    facts: HostFacts | None = None
    config: WorkstationConfig | None = None
    errors: list[str] = field(default_factory=list)
    # adapter name -> host tool present; informational, not a precondition
    tools: dict[str, bool] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.facts is not None and not self.errors

    def to_dict(self) -> dict:
        result: dict = {"passed": self.passed, "errors": self.errors}
        if self.facts:
            result["host"] = {
                "euid": self.facts.euid,
                "sudo_user": self.facts.sudo_user,
                "os_release_path": self.facts.os_release_path,
                "os_release_found": self.facts.os_release_found,
                "name": self.facts.os_name,
                "version_id": self.facts.version_id,
            }
        if self.config:
            result["target"] = self.config.target.label
        result["tools"] = self.tools
        return result


def check_host(
    config_path: Path | None = None,
    config: WorkstationConfig | None = None,
    facts: HostFacts | None = None,
    probe_tools: bool = True,
) -> CheckResult:
    """Evaluate whether this host may be provisioned.

    Args:
        config_path: Optional explicit path to workstation.yml.
        config: Pre-loaded configuration (skips loading).
        facts: Pre-built host snapshot (skips reading the host).
        probe_tools: Also report which adapters have their host tool installed.
    """
    result = CheckResult()

    if config is None:
        try:
            config = load_config(config_path)
        except ConfigError as e:
            result.errors.append(str(e))
            return result
    result.config = config

    if facts is None:
        facts = read_host_facts(config.paths.os_release)
    result.facts = facts

    result.errors = check_preconditions(facts, config.target)

    if probe_tools:
        from workstation.core.use_cases.provision import default_registry

        result.tools = default_registry().availability()
    return result
