"""
CLI: ``stagewise units`` — inspect the unit registry.
"""

from __future__ import annotations

from pathlib import Path

import typer

from stagewise.cli.utils import fail, open_registry, parse_network, print_dict, print_json, print_table
from stagewise.core.errors import DeployError
from stagewise.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_units(
    network: str | None = typer.Option(None, "--network", "-n"),
    registry_dir: Path | None = typer.Option(None, "--registry-dir"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List every unit recorded for a network, oldest first."""
    settings = get_settings()
    target = parse_network(network or settings.network)
    try:
        units = open_registry(registry_dir or settings.registry_dir, target).units()
    except DeployError as e:
        raise fail(e.message) from e

    if json_out:
        print_json([u.model_dump(mode="json") for u in units])
        return
    print_table([u.summary() for u in units], title=f"Units on {target.value}")


@app.command("show")
def show_unit(
    name: str = typer.Argument(..., help="Unit name"),
    network: str | None = typer.Option(None, "--network", "-n"),
    registry_dir: Path | None = typer.Option(None, "--registry-dir"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one unit: identity, kind, creation args and receipt."""
    settings = get_settings()
    target = parse_network(network or settings.network)
    try:
        unit = open_registry(registry_dir or settings.registry_dir, target).get(name)
    except DeployError as e:
        raise fail(e.message) from e

    data = unit.model_dump(mode="json")
    if json_out:
        print_json(data)
        return
    print_dict(data, title=f"Unit: {name}")
