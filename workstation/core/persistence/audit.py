"""
Run history: one JSON line per provisioning run.

``audit.ndjson`` sits next to ``current.json`` in the state directory.
``current.json`` holds only the latest run; this file keeps them all.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

AUDIT_FILENAME = "audit.ndjson"


class AuditEntry(BaseModel):
    """Summary of one run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    operation_type: str = "provision"
    hostname: str = ""
    status: str = ""  # ok | partial | aborted
    steps_run: list[str] = Field(default_factory=list)
    actions_total: int = 0
    actions_succeeded: int = 0
    actions_skipped: int = 0
    actions_failed: int = 0
    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditLedger:
    """Append-only NDJSON file of ``AuditEntry`` records.

    I/O errors are logged, not raised: a full disk at the end of a run
    should not turn a finished provisioning into a failed one.
    """

    def __init__(self, state_dir: Path | None = None, path: Path | None = None):
        self.path = path or (state_dir or Path(".")) / AUDIT_FILENAME

    def append(self, entry: AuditEntry) -> None:
        line = entry.model_dump_json() + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Could not append to %s: %s", self.path, e)
            return
        logger.debug("Recorded %s in %s", entry.operation_id, self.path)

    def entries(self) -> list[AuditEntry]:
        """Every readable entry, oldest first. Corrupt lines are skipped."""
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Could not read %s: %s", self.path, e)
            return []

        found: list[AuditEntry] = []
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                found.append(AuditEntry.model_validate(json.loads(line)))
            except ValueError as e:
                logger.warning("%s:%d: unreadable entry skipped (%s)", self.path, number, e)
        return found

    def tail(self, n: int = 20) -> list[AuditEntry]:
        return self.entries()[-n:] if n > 0 else []
