"""
Persisted record of the latest provisioning run.

Written to ``<state_dir>/current.json`` after every real run and read
back by ``workstation status``. Provisioning itself never consults it:
deleting the file changes nothing about the next run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _utc_stamp() -> str:
    return datetime.now(UTC).isoformat()


class StepState(BaseModel):
    name: str
    status: str = ""  # ok | skipped | failed | not_run
    actions_total: int = 0
    actions_failed: int = 0
    last_error: str | None = None
    finished_at: str | None = None


class RunRecord(BaseModel):
    operation_id: str = ""
    status: str = ""  # ok | partial | aborted
    started_at: str = ""
    ended_at: str = ""
    actions_total: int = 0
    actions_succeeded: int = 0
    actions_skipped: int = 0
    actions_failed: int = 0


class ProvisionState(BaseModel):
    """Contents of ``current.json``."""

    hostname: str = ""
    target: str = ""  # e.g. "Ubuntu 22.04"
    updated_at: str = Field(default_factory=_utc_stamp)
    last_run: RunRecord = Field(default_factory=RunRecord)
    steps: dict[str, StepState] = Field(default_factory=dict)
    # Title passed to grub-set-default, if one was found
    default_boot_entry: str | None = None

    def touch(self) -> None:
        self.updated_at = _utc_stamp()

    def set_step_state(self, name: str, **fields: Any) -> None:
        """Create the step's entry or update the given fields on it."""
        current = self.steps.get(name)
        if current is None:
            self.steps[name] = StepState(name=name, **fields)
        else:
            self.steps[name] = current.model_copy(update=fields)
