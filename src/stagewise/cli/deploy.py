"""
CLI: ``stagewise run`` / ``stagewise plan`` — execute or preview a stage plan.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from stagewise.cli.utils import (
    DEFAULT_PLAN,
    console,
    err_console,
    fail,
    load_client,
    load_constants,
    load_plan,
    make_signer,
    open_registry,
    parse_network,
    parse_tags,
    print_json,
    print_table,
    scratch_copy,
)
from stagewise.core.errors import DeployError
from stagewise.core.settings import get_settings
from stagewise.ledger.dry_run import DryRunLedgerClient
from stagewise.orchestration.orchestrator import DeploymentResult, Orchestrator, StageStatus
from stagewise.orchestration.planner import plan_run

_STATUS_STYLE = {
    StageStatus.COMPLETED: "green",
    StageStatus.FAILED: "bold red",
    StageStatus.SKIPPED: "dim",
}


def run_command(
    network: str | None = typer.Option(None, "--network", "-n", help="Target network."),
    tags: str | None = typer.Option(None, "--tags", "-t", help="Comma-separated stage tags to run."),
    plan: str = typer.Option(DEFAULT_PLAN, "--plan", "-p", help="Plan factory as module:attr."),
    client: str | None = typer.Option(None, "--client", "-c", help="Ledger client factory as module:attr."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use fake identities; registry is not written."),
    constants_file: Path | None = typer.Option(None, "--constants", help="TOML constants file."),
    registry_dir: Path | None = typer.Option(None, "--registry-dir", help="Unit registry root directory."),
    signer: str | None = typer.Option(None, "--signer", help="Signer address."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run every applicable stage in order, stopping at the first failure."""
    settings = get_settings()
    target = parse_network(network or settings.network)

    if dry_run and client:
        raise fail("--client and --dry-run are mutually exclusive")
    if not dry_run and not client:
        raise fail("No ledger client: pass --client module:factory or --dry-run")

    try:
        stages, plan_module = load_plan(plan)
        constants = load_constants(constants_file or settings.constants_file, target, plan_module)
        registry = open_registry(registry_dir or settings.registry_dir, target)
        if dry_run:
            registry = scratch_copy(registry)
            ledger = DryRunLedgerClient()
        else:
            ledger = load_client(client)
    except DeployError as e:
        raise fail(e.message) from e

    orchestrator = Orchestrator(registry, ledger, make_signer(settings, signer), constants=constants)
    result = orchestrator.run_all(stages, target, tags=parse_tags(tags))

    if json_out:
        print_json(result.to_dict())
    else:
        _print_result(result, dry_run=dry_run)

    if not result.succeeded:
        raise typer.Exit(code=1)


def plan_command(
    network: str | None = typer.Option(None, "--network", "-n", help="Target network."),
    tags: str | None = typer.Option(None, "--tags", "-t", help="Comma-separated stage tags."),
    plan: str = typer.Option(DEFAULT_PLAN, "--plan", "-p", help="Plan factory as module:attr."),
    registry_dir: Path | None = typer.Option(None, "--registry-dir", help="Unit registry root directory."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Preview which stages would run or be skipped (no ledger access)."""
    settings = get_settings()
    target = parse_network(network or settings.network)

    try:
        stages, _ = load_plan(plan)
        registry = open_registry(registry_dir or settings.registry_dir, target)
        preview = plan_run(stages, target, tags=parse_tags(tags), registry=registry)
    except DeployError as e:
        raise fail(e.message) from e

    if json_out:
        print_json(
            {
                "network": preview.network.value,
                "tags": list(preview.tags),
                "will_run": preview.will_run,
                "will_skip": preview.will_skip,
                "existing_units": preview.existing_units,
            }
        )
        return
    console.print(escape(preview.summary()))


def _print_result(result: DeploymentResult, *, dry_run: bool) -> None:
    rows = []
    for execution in result.stage_executions:
        style = _STATUS_STYLE[execution.status]
        rows.append(
            {
                "stage": execution.stage_name,
                "status": f"[{style}]{execution.status.value}[/{style}]",
                "created": len(execution.units_created),
                "reused": len(execution.units_reused),
                "calls": execution.calls_made,
                "skipped calls": execution.calls_skipped,
                "note": execution.reason or "",
            }
        )

    title = f"Deployment on {result.network.value}" + (" (dry run)" if dry_run else "")
    print_table(rows, title=title, markup=True)

    if result.succeeded:
        console.print(
            f"[green]Completed[/green] {len(result.completed_stages)} stage(s), "
            f"skipped {len(result.skipped_stages)}, run {result.run_id}"
        )
        return

    err_console.print(
        f"[bold red]Failed[/bold red] at stage {escape(str(result.error_stage))} "
        f"step {result.error_step}: {escape(str(result.error))}"
    )
    if result.error is not None and result.error.cause is not None:
        err_console.print(f"  [dim]cause:[/dim] {escape(repr(result.error.cause))}")
