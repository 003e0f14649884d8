"""
Provision use case: the full vertical slice of a run.

Loads configuration, snapshots the host, refuses to start unless the
preconditions hold, builds the ordered steps, executes them fail-fast,
and records the outcome in the state file and audit ledger.
"""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path

from workstation.adapters.registry import AdapterRegistry
from workstation.core.config.loader import ConfigError, load_config
from workstation.core.engine.executor import (
    ExecutionPlan,
    ExecutionReport,
    execute_plan,
    generate_operation_id,
    write_audit_entries,
)
from workstation.core.models.config import WorkstationConfig
from workstation.core.models.host import HostFacts
from workstation.core.persistence.audit import AuditLedger
from workstation.core.persistence.state_file import default_state_path, load_state, save_state
from workstation.core.services.host_facts import check_preconditions, read_host_facts
from workstation.core.services.steps import STEP_BOOTLOADER, build_steps

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    config: WorkstationConfig | None = None
    facts: HostFacts | None = None
    plan: ExecutionPlan | None = None
    report: ExecutionReport | None = None
    precondition_errors: list[str] = field(default_factory=list)
    error: str | None = None
    state_saved: bool = False

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and not self.precondition_errors
            and self.report is not None
            and not self.report.aborted
        )

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def to_dict(self) -> dict:
        result: dict = {"ok": self.ok}
        if self.error:
            result["error"] = self.error
        if self.precondition_errors:
            result["precondition_errors"] = self.precondition_errors
        if self.plan:
            result["actions_planned"] = self.plan.total_actions
        if self.report:
            result["report"] = self.report.to_dict()
        result["state_saved"] = self.state_saved
        return result


def default_registry(mock_mode: bool = False, timeout: int | None = None) -> AdapterRegistry:
    """Registry with every adapter the provisioning steps dispatch to.

    With ``mock_mode`` a ``MockAdapter`` receives every action instead.
    """
    from workstation.adapters.boot.grub import GrubAdapter
    from workstation.adapters.mock import MockAdapter
    from workstation.adapters.packages.apt import AptAdapter
    from workstation.adapters.shell.command import ShellCommandAdapter
    from workstation.adapters.shell.filesystem import FilesystemAdapter

    registry = AdapterRegistry(timeout=timeout)
    registry.register(ShellCommandAdapter(), FilesystemAdapter(), AptAdapter(), GrubAdapter())
    if mock_mode:
        registry.set_mock_mode(True, MockAdapter())
    return registry


def run_provision(
    config_path: Path | None = None,
    config: WorkstationConfig | None = None,
    facts: HostFacts | None = None,
    registry: AdapterRegistry | None = None,
    only: list[str] | None = None,
    bin_dir: str | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    enforce_preconditions: bool = True,
    state_dir: Path | None = None,
    persist: bool = True,
) -> ProvisionResult:
    """Provision this workstation.

    Args:
        config_path: Optional explicit path to workstation.yml.
        config: Pre-loaded configuration (skips loading).
        facts: Pre-built host snapshot (skips reading the host).
        registry: Optional pre-configured adapter registry.
        only: Restrict the run to these steps.
        bin_dir: Override the wrapper directory.
        dry_run: Validate every action but execute none.
        mock_mode: Route every action to the mock adapter.
        enforce_preconditions: Refuse to run unless root on the target OS.
        state_dir: Override the state directory.
        persist: Record the run in the state file and audit ledger.

    Returns:
        ProvisionResult. ``exit_code`` is 1 on refusal or abort.
    """
    result = ProvisionResult()

    # ── Load config ──────────────────────────────────────────────
    if config is None:
        try:
            config = load_config(config_path)
        except ConfigError as e:
            result.error = str(e)
            return result
    result.config = config

    # ── Preconditions ────────────────────────────────────────────
    if facts is None:
        facts = read_host_facts(config.paths.os_release)
    result.facts = facts

    if enforce_preconditions:
        result.precondition_errors = check_preconditions(facts, config.target)
        if result.precondition_errors:
            for err in result.precondition_errors:
                logger.error(err)
            return result

    # ── Plan ─────────────────────────────────────────────────────
    try:
        steps = build_steps(config, facts, only=only, bin_dir=bin_dir)
    except ValueError as e:
        result.error = str(e)
        return result

    plan = ExecutionPlan(operation_id=generate_operation_id(), steps=steps)
    result.plan = plan

    # ── Execute ──────────────────────────────────────────────────
    if registry is None:
        registry = default_registry(mock_mode=mock_mode, timeout=config.command_timeout)

    logger.info("Starting workstation setup (%s)...", plan.operation_id)
    report = execute_plan(plan, registry, dry_run=dry_run)
    result.report = report

    failure = report.failure()
    if failure is not None:
        logger.error("Workstation setup aborted at %s: %s", failure.action_id, failure.error)
    else:
        logger.info("Workstation setup complete.")

    # ── Persist ──────────────────────────────────────────────────
    if dry_run or registry.mock_mode or not persist:
        return result

    root = state_dir or Path(config.paths.state_dir)
    result.state_saved = _persist(plan, report, config, root)
    write_audit_entries(report, AuditLedger(state_dir=root), hostname=platform.node())

    return result


def _persist(
    plan: ExecutionPlan, report: ExecutionReport, config: WorkstationConfig, state_dir: Path
) -> bool:
    path = default_state_path(state_dir)
    state = load_state(path)
    state.hostname = platform.node()
    state.target = config.target.label

    run = state.last_run
    run.operation_id = report.operation_id
    run.started_at = report.started_at
    run.ended_at = report.ended_at
    run.status = report.status
    run.actions_total = report.total
    run.actions_succeeded = report.succeeded
    run.actions_failed = report.failed
    run.actions_skipped = report.skipped

    # Every planned step is rewritten, so steps after an abort read not_run.
    for step in plan.steps:
        receipts = report.step_receipts.get(step.name, [])
        failed = [r for r in receipts if r.failed]
        state.set_step_state(
            step.name,
            status=report.step_status(step.name),
            actions_total=len(receipts),
            actions_failed=len(failed),
            last_error=failed[-1].error if failed else None,
            finished_at=receipts[-1].ended_at if receipts else None,
        )

    for receipt in report.step_receipts.get(STEP_BOOTLOADER, []):
        entry = receipt.metadata.get("entry")
        if receipt.ok and entry:
            state.default_boot_entry = entry

    try:
        save_state(state, path)
    except OSError as e:
        logger.error("Could not record run state in %s: %s", path, e)
        return False
    return True
