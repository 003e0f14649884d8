"""
Engine executor: the provisioning sequencer.

Runs the planned steps in order, one blocking action at a time, through
the adapter registry. The first failed action of a step that is not
best-effort aborts the run; nothing is retried or rolled back.

Flow:
    steps → plan → execute (fail-fast) → report → audit
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime

from workstation.adapters.registry import AdapterRegistry
from workstation.core.models.action import Action, Receipt
from workstation.core.models.step import ProvisionStep
from workstation.core.persistence.audit import AuditEntry, AuditLedger

logger = logging.getLogger(__name__)


@dataclass
class ExecutionPlan:
    """The ordered steps of one provisioning run."""

    operation_id: str = ""
    steps: list[ProvisionStep] = field(default_factory=list)

    @property
    def actions(self) -> list[Action]:
        return [a for step in self.steps for a in step.actions]

    @property
    def total_actions(self) -> int:
        return len(self.actions)

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "total_actions": self.total_actions,
            "steps": [
                {
                    "name": step.name,
                    "description": step.description,
                    "best_effort": step.best_effort,
                    "action_count": step.action_count,
                    "actions": [
                        {
                            "id": a.id,
                            "name": a.name,
                            "adapter": a.adapter,
                            "best_effort": a.best_effort,
                            "skip_reason": a.skip_reason,
                        }
                        for a in step.actions
                    ],
                }
                for step in self.steps
            ],
        }


@dataclass
class ExecutionReport:
    """Receipts of one run, in dispatch order and grouped by step."""

    operation_id: str = ""
    started_at: str = ""
    ended_at: str = ""
    receipts: list[Receipt] = field(default_factory=list)
    step_receipts: dict[str, list[Receipt]] = field(default_factory=dict)
    aborted_at: str | None = None   # action id that stopped the run
    dry_run: bool = False

    def _count(self, status: str) -> int:
        return Counter(r.status for r in self.receipts)[status]

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return self._count("ok")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def aborted(self) -> bool:
        return self.aborted_at is not None

    @property
    def status(self) -> str:
        """``aborted`` on a fatal failure, ``partial`` if only best-effort actions failed."""
        if self.aborted:
            return "aborted"
        return "partial" if self.failed else "ok"

    def record(self, step: str, receipt: Receipt) -> None:
        self.receipts.append(receipt)
        self.step_receipts.setdefault(step, []).append(receipt)

    def step_status(self, step: str) -> str:
        receipts = self.step_receipts.get(step)
        if not receipts:
            return "not_run"
        if any(r.failed for r in receipts):
            return "failed"
        if all(r.skipped for r in receipts):
            return "skipped"
        return "ok"

    def failure(self) -> Receipt | None:
        """The receipt that aborted the run, if any."""
        return next((r for r in self.receipts if r.action_id == self.aborted_at), None)

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "counts": {
                "total": self.total,
                "ok": self.succeeded,
                "skipped": self.skipped,
                "failed": self.failed,
            },
            "aborted_at": self.aborted_at,
            "steps": {name: self.step_status(name) for name in self.step_receipts},
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


_MARKERS = {"ok": "✓", "failed": "✗", "skipped": "⊘"}


def execute_plan(
    plan: ExecutionPlan,
    registry: AdapterRegistry,
    dry_run: bool = False,
) -> ExecutionReport:
    """Dispatch every action in order; stop at the first fatal failure.

    A failed action aborts the run unless it is best-effort, in which
    case it is logged and the next action runs. Nothing is retried.
    """
    report = ExecutionReport(operation_id=plan.operation_id, started_at=_now_iso(), dry_run=dry_run)

    for step in plan.steps:
        logger.info("── %s: %s", step.name, step.description)
        for action in step.actions:
            receipt = _dispatch(action, registry, dry_run)
            report.record(step.name, receipt)
            if receipt.failed and not action.best_effort:
                logger.error("Action %s failed: %s", action.id, receipt.error)
                report.aborted_at = action.id
                report.ended_at = _now_iso()
                return report

    report.ended_at = _now_iso()
    return report


def _dispatch(action: Action, registry: AdapterRegistry, dry_run: bool) -> Receipt:
    logger.info("%s...", action.name or action.id)
    receipt = registry.execute_action(action, dry_run=dry_run)
    logger.info("%s %s → %s", _MARKERS[receipt.status], action.id, receipt.status)

    if receipt.ok and receipt.output and action.adapter == "shell":
        # e.g. the first line of `gcc --version`
        logger.info("   %s", receipt.output.splitlines()[0])
    elif receipt.failed and action.best_effort:
        logger.warning("Best-effort action %s failed: %s", action.id, receipt.error)
    return receipt


def write_audit_entries(report: ExecutionReport, ledger: AuditLedger, hostname: str = "") -> None:
    """Append a summary of ``report`` to the run history."""
    ledger.append(AuditEntry(
        operation_id=report.operation_id,
        hostname=hostname,
        status=report.status,
        steps_run=list(report.step_receipts),
        actions_total=report.total,
        actions_succeeded=report.succeeded,
        actions_skipped=report.skipped,
        actions_failed=report.failed,
        errors=[f"{r.action_id}: {r.error}" for r in report.receipts if r.failed],
        context={"dry_run": report.dry_run},
    ))


def generate_operation_id() -> str:
    """``op-<UTC timestamp>-<6 hex chars>``."""
    return f"op-{datetime.now(UTC):%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:6]}"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()
