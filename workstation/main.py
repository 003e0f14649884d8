"""
Contest workstation provisioner: CLI entrypoint.

Usage:
    sudo workstation provision
    workstation check
    workstation plan
    workstation wrappers --bin-dir ~/bin
    workstation grub-entry /boot/grub/grub.cfg
    workstation status
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from workstation import __version__
from workstation.core.observability.logging_config import setup_logging
from workstation.core.services.steps import STEP_ORDER


@click.group()
@click.version_option(version=__version__, prog_name="workstation")
@click.option("--verbose", "-v", is_flag=True, help="Show command output in the transcript.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to workstation.yml (default: auto-detect, else built-in defaults).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Contest workstation provisioner: toolchain, editors, wrappers, GRUB."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("WORKSTATION_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("WORKSTATION_LOG_FILE"),
        log_file_level=os.environ.get("WORKSTATION_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Validate every action but execute none.")
@click.option("--mock", is_flag=True, help="Use mock adapter (no real execution).")
@click.option(
    "--step",
    "steps",
    multiple=True,
    type=click.Choice(STEP_ORDER),
    help="Run only these steps (repeatable).",
)
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Where to record the run (default: from config).",
)
@click.pass_context
def provision(
    ctx: click.Context,
    as_json: bool,
    dry_run: bool,
    mock: bool,
    steps: tuple[str, ...],
    state_dir: str | None,
) -> None:
    """Provision this workstation (must run as root on Ubuntu 22.04).

    Examples:

        sudo workstation provision

        sudo workstation provision --dry-run

        sudo workstation provision --step wrappers --step bootloader
    """
    from workstation.core.use_cases.provision import run_provision

    result = run_provision(
        config_path=ctx.obj.get("config_path"),
        only=list(steps) or None,
        dry_run=dry_run,
        mock_mode=mock,
        state_dir=Path(state_dir) if state_dir else None,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if result.precondition_errors:
        for err in result.precondition_errors:
            click.secho(f"❌ {err}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None

    mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
    click.echo()
    for step_name, receipts in report.step_receipts.items():
        click.secho(f"   {mode_label}{step_name}", fg="cyan", bold=True)
        for receipt in receipts:
            if receipt.ok:
                click.secho(f"     ✓ {receipt.action_id}", fg="green")
                if ctx.obj.get("verbose") and receipt.output:
                    for line in receipt.output.split("\n")[:10]:
                        click.echo(f"       │ {line}")
            elif receipt.failed:
                click.secho(f"     ✗ {receipt.action_id}", fg="red")
                for line in (receipt.error or "").split("\n")[:5]:
                    click.echo(f"       │ {line}")
            else:
                click.secho(f"     ⊘ {receipt.action_id} ", fg="yellow", nl=False)
                click.echo(f"({receipt.output})")

    click.echo()
    status_color = {"ok": "green", "partial": "yellow", "aborted": "red"}.get(
        report.status, "white"
    )
    click.secho(
        f"   Result: {report.status} ({report.succeeded} ok, "
        f"{report.skipped} skipped, {report.failed} failed)",
        fg=status_color,
        bold=True,
    )
    failure = report.failure()
    if failure is not None:
        reason = failure.error.splitlines()[0] if failure.error else "no error output"
        click.secho(f"   Stopped at {failure.action_id}: {reason}", fg="red")
    click.echo()
    sys.exit(result.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Check the preconditions (root, Ubuntu 22.04) without changing anything."""
    from workstation.core.use_cases.check import check_host

    result = check_host(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.passed else 1)

    if result.passed:
        assert result.facts is not None
        click.secho("✅ Host can be provisioned", fg="green", bold=True)
        click.echo(f"   OS: {result.facts.os_name} {result.facts.version_id}")
        click.echo(f"   Invoking user: {result.facts.sudo_user or '(none)'}")
        missing = [name for name, present in result.tools.items() if not present]
        if missing:
            click.secho(f"   Host tools missing for: {', '.join(missing)}", fg="yellow")
        return

    for err in result.errors:
        click.secho(f"❌ {err}", fg="red")
    sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, as_json: bool) -> None:
    """Show the ordered steps and actions without executing anything."""
    from workstation.core.config.loader import ConfigError, load_config
    from workstation.core.engine.executor import ExecutionPlan
    from workstation.core.services.host_facts import read_host_facts
    from workstation.core.services.steps import build_steps

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    facts = read_host_facts(config.paths.os_release)
    execution_plan = ExecutionPlan(steps=build_steps(config, facts))

    if as_json:
        click.echo(json.dumps(execution_plan.to_dict(), indent=2))
        return

    click.echo()
    for index, step in enumerate(execution_plan.steps, start=1):
        marker = " (best-effort)" if step.best_effort else ""
        click.secho(f"   {index}. {step.name}{marker}", fg="cyan", bold=True)
        click.echo(f"      {step.description}")
        for action in step.actions:
            note = f"  ⊘ {action.skip_reason}" if action.skip_reason else ""
            click.echo(f"      • {action.name}{note}")
    click.echo()


@cli.command()
@click.option(
    "--bin-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to write gcc, g++ and build into (default: from config).",
)
@click.option("--dry-run", is_flag=True, help="Validate but don't write.")
@click.pass_context
def wrappers(ctx: click.Context, bin_dir: str | None, dry_run: bool) -> None:
    """Write only the compiler wrappers (no root or OS check)."""
    from workstation.core.services.steps import STEP_WRAPPERS
    from workstation.core.use_cases.provision import run_provision

    result = run_provision(
        config_path=ctx.obj.get("config_path"),
        only=[STEP_WRAPPERS],
        bin_dir=str(Path(bin_dir).resolve()) if bin_dir else None,
        dry_run=dry_run,
        enforce_preconditions=False,
        persist=False,
    )

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None
    for receipt in report.receipts:
        if receipt.failed:
            click.secho(f"❌ {receipt.action_id}: {receipt.error}", fg="red")
        elif receipt.skipped:
            click.secho(f"⊘ {receipt.output}", fg="yellow")
        else:
            click.secho(f"✓ {receipt.output}", fg="green")
    sys.exit(result.exit_code)


@cli.command("grub-entry")
@click.argument(
    "menu_file",
    type=click.Path(dir_okay=False),
    required=False,
)
@click.option("--prefix", default=None, help="Menu title prefix (default: from config).")
@click.pass_context
def grub_entry(ctx: click.Context, menu_file: str | None, prefix: str | None) -> None:
    """Print the boot entry that would become the default."""
    from workstation.core.config.loader import ConfigError, load_config
    from workstation.core.services.grub_config import find_menu_entry

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    path = Path(menu_file or config.grub.menu_file)
    prefix = prefix or config.grub.default_entry_prefix

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        click.secho(f"❌ Cannot read {path}: {e}", fg="red")
        sys.exit(1)

    entry = find_menu_entry(text, prefix)
    if entry is None:
        click.secho(f"⊘ {prefix} not found in {path}", fg="yellow")
        sys.exit(1)
    click.echo(entry)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="State directory to read (default: from config).",
)
@click.pass_context
def status(ctx: click.Context, as_json: bool, state_dir: str | None) -> None:
    """Show the outcome of the last provisioning run."""
    from workstation.core.use_cases.status import get_status

    result = get_status(
        config_path=ctx.obj.get("config_path"),
        state_dir=Path(state_dir) if state_dir else None,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not result.has_run:
        click.echo("No provisioning run recorded yet.")
        return

    assert result.state is not None
    run = result.state.last_run
    status_color = {"ok": "green", "partial": "yellow", "aborted": "red"}.get(run.status, "white")

    click.echo()
    click.secho(f"🖥  {result.state.hostname or 'workstation'} ({result.state.target})", fg="cyan", bold=True)
    click.echo(f"   Last run: {run.operation_id}: ", nl=False)
    click.secho(run.status, fg=status_color)
    if run.ended_at:
        click.echo(f"   at {run.ended_at}")
    click.echo(f"   Actions: {run.actions_succeeded} ok, {run.actions_skipped} skipped, {run.actions_failed} failed")
    click.echo()
    for name, step in result.state.steps.items():
        click.echo(f"     • {name}: {step.status}")
        if step.last_error:
            click.echo(f"       │ {step.last_error}")
    if result.state.default_boot_entry:
        click.echo()
        click.echo(f"   Default boot entry: {result.state.default_boot_entry}")
    click.echo()


if __name__ == "__main__":
    cli()
