"""
Status use case: report the last provisioning run from the state file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from workstation.core.config.loader import ConfigError, load_config
from workstation.core.models.state import ProvisionState
from workstation.core.persistence.audit import AuditEntry, AuditLedger
from workstation.core.persistence.state_file import default_state_path, load_state


@dataclass
class StatusResult:
    """Last-run summary plus recent audit history."""

    state: ProvisionState | None = None
    state_path: Path | None = None
    history: list[AuditEntry] | None = None
    error: str | None = None

    @property
    def has_run(self) -> bool:
        return bool(self.state and self.state.last_run.operation_id)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        if self.error:
            return {"error": self.error}

        result: dict = {
            "state_path": str(self.state_path) if self.state_path else None,
            "has_run": self.has_run,
        }
        if self.state:
            result["hostname"] = self.state.hostname
            result["target"] = self.state.target
            result["last_run"] = self.state.last_run.model_dump(mode="json")
            result["steps"] = {
                name: step.model_dump(mode="json") for name, step in self.state.steps.items()
            }
            result["default_boot_entry"] = self.state.default_boot_entry
        if self.history is not None:
            result["history"] = [
                {"operation_id": e.operation_id, "timestamp": e.timestamp, "status": e.status}
                for e in self.history
            ]
        return result


def get_status(
    config_path: Path | None = None,
    state_dir: Path | None = None,
    history: int = 5,
) -> StatusResult:
    """Read the recorded state of the last run.

    Args:
        config_path: Optional explicit path to workstation.yml.
        state_dir: Override the state directory.
        history: Number of audit entries to include.
    """
    result = StatusResult()

    if state_dir is None:
        try:
            config = load_config(config_path)
        except ConfigError as e:
            result.error = str(e)
            return result
        state_dir = Path(config.paths.state_dir)

    result.state_path = default_state_path(state_dir)
    result.state = load_state(result.state_path)
    result.history = AuditLedger(state_dir=state_dir).tail(history)
    return result
