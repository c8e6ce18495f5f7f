"""
CLI utility helpers — plan/client loading, registry wiring and output formatting.
"""

from __future__ import annotations

import importlib
import json
from collections.abc import Callable
from pathlib import Path
from types import ModuleType
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from stagewise.core.constants import ConstantTable
from stagewise.core.errors import ConfigError, DeployError
from stagewise.core.network import Network
from stagewise.core.settings import StagewiseSettings
from stagewise.ledger.client import LedgerClient, Signer
from stagewise.orchestration.stage import Stage, validate_stage_names
from stagewise.registry.registry import UnitRegistry
from stagewise.registry.store import JsonUnitStore, MemoryUnitStore

console = Console()
err_console = Console(stderr=True)

DEFAULT_PLAN = "stagewise.plans.tower:build_stages"


# ── Errors ───────────────────────────────────────────────────────────────


def fail(message: str, code: int = 1) -> typer.Exit:
    """Print ``message`` to stderr and return an Exit to raise."""
    err_console.print(f"[bold red]Error[/bold red]: {escape(message)}")
    return typer.Exit(code=code)


# ── Loading ──────────────────────────────────────────────────────────────


def resolve_ref(ref: str) -> tuple[ModuleType, Callable[..., Any]]:
    """Import ``'module:qualname'`` and return (module, callable).

    Raises:
        ConfigError: If the module or attribute cannot be loaded, or is not callable.
    """
    module_path, _, attr_path = ref.partition(":")
    if not module_path or not attr_path:
        raise ConfigError(f"Invalid reference (expected 'module:attr'): {ref!r}")
    try:
        mod = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigError(f"Cannot import {module_path!r}: {e}", cause=e) from e
    obj: Any = mod
    try:
        for part in attr_path.split("."):
            obj = getattr(obj, part)
    except AttributeError as e:
        raise ConfigError(f"{ref!r} does not exist: {e}", cause=e) from e
    if not callable(obj):
        raise ConfigError(f"{ref!r} resolved to non-callable: {type(obj).__name__}")
    return mod, obj


def load_plan(ref: str) -> tuple[list[Stage], ModuleType]:
    """Build the stage list from a plan factory reference."""
    mod, factory = resolve_ref(ref)
    stages = list(factory())
    try:
        validate_stage_names(stages)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Plan {ref!r} is invalid: {e}", cause=e) from e
    return stages, mod


def load_constants(path: Path | None, network: Network, plan_module: ModuleType | None = None) -> ConstantTable:
    """Constants file if given, else the plan's ``default_constants()``, else empty."""
    if path is not None:
        return ConstantTable.from_toml(path, network)
    defaults = getattr(plan_module, "default_constants", None)
    if callable(defaults):
        return defaults()
    return ConstantTable()


def load_client(ref: str) -> LedgerClient:
    """Instantiate a ledger client from a zero-argument factory reference."""
    _, factory = resolve_ref(ref)
    client = factory()
    if not isinstance(client, LedgerClient):
        raise ConfigError(f"{ref!r} did not produce a LedgerClient (got {type(client).__name__})")
    return client


def open_registry(registry_dir: Path, network: Network) -> UnitRegistry:
    return UnitRegistry(JsonUnitStore(registry_dir, network))


def scratch_copy(registry: UnitRegistry) -> UnitRegistry:
    """In-memory registry seeded from ``registry``; writes never reach the original."""
    store = MemoryUnitStore()
    for unit in registry.units():
        store.put(unit)
    for record in registry.calls():
        store.put_call(record)
    return UnitRegistry(store)


def make_signer(settings: StagewiseSettings, address: str | None = None) -> Signer:
    return Signer(address=address or settings.signer_address, label=settings.signer_label)


def parse_tags(tags: str | None) -> list[str]:
    if not tags:
        return []
    return [t.strip() for t in tags.split(",") if t.strip()]


def parse_network(value: str) -> Network:
    try:
        return Network.parse(value)
    except DeployError as e:
        raise fail(e.message) from e


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "", markup: bool = False) -> None:
    """Render a list of dicts as a Rich table (values escaped unless ``markup``)."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) if markup else escape(str(v)) for v in row.values()))
    console.print(table)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{escape(title)}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {escape(str(v))}")
