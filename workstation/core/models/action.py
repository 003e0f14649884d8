"""
Actions and receipts.

An ``Action`` is one unit of provisioning work routed to an adapter by
name; a ``Receipt`` is what came back. Failures travel in receipts, so
the executor can decide whether a failed action ends the run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "skipped", "failed"]


def _utc_stamp() -> str:
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """One provisioning operation, e.g. ``packages:install-compilers``."""

    id: str
    adapter: str
    name: str = ""
    step: str = ""
    # Failure is reported but the run continues.
    best_effort: bool = False
    # Set at plan time; the action is reported skipped and never dispatched.
    skip_reason: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)


class Receipt(BaseModel):
    """Outcome of dispatching an action."""

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"
    output: str = ""
    error: str | None = None
    started_at: str = Field(default_factory=_utc_stamp)
    ended_at: str = Field(default_factory=_utc_stamp)
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **extra)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **extra)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **extra: Any) -> Receipt:
        """Skipped receipt; ``reason`` is carried in ``output``."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **extra)
