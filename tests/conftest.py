"""
Shared pytest fixtures and configuration for stagewise tests.

This module provides:
- Settings/logging isolation fixtures
- Registries over memory and JSON stores
- Ledger doubles and a deterministic signer
- Small stage sequences used across orchestration tests

Usage:
    Fixtures are auto-discovered by pytest; use them as function arguments.

    def test_something(registry, ledger, signer):
        ...
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from stagewise.core.constants import ConstantTable
from stagewise.core.logging import clear_context
from stagewise.core.network import Network, local_only
from stagewise.core.settings import reset_settings
from stagewise.ledger.client import Signer
from stagewise.orchestration.context import StageContext
from stagewise.orchestration.stage import Stage
from stagewise.orchestration.testing import FakeLedgerClient, make_signer
from stagewise.registry.registry import UnitRegistry
from stagewise.registry.store import JsonUnitStore


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "cli" in test_path.parts or "json_store" in item.name:
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Fresh settings per test; never read a developer's .env or STAGEWISE_* vars."""
    import os

    for key in list(os.environ):
        if key.startswith("STAGEWISE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    clear_context()
    yield
    reset_settings()
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def signer() -> Signer:
    return make_signer()


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def registry() -> UnitRegistry:
    return UnitRegistry()


@pytest.fixture
def registry_dir(tmp_path: Path) -> Path:
    path = tmp_path / "deployments"
    path.mkdir()
    return path


@pytest.fixture
def json_registry(registry_dir: Path) -> UnitRegistry:
    return UnitRegistry(JsonUnitStore(registry_dir, Network.LOCALHOST))


@pytest.fixture
def constants() -> ConstantTable:
    return ConstantTable(
        {
            "usdc": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
            "operator": "0x974AC76c7870d941AafB03a716e1fec498808291",
            "fee_percent": "0.3",
        }
    )


@pytest.fixture
def make_context(registry: UnitRegistry, ledger: FakeLedgerClient, signer: Signer, constants: ConstantTable):
    """Factory for StageContext bound to the shared fixtures."""

    def _make(stage_name: str = "test", network: Network = Network.LOCALHOST) -> StageContext:
        return StageContext(
            stage_name,
            registry=registry,
            ledger=ledger,
            signer=signer,
            network=network,
            constants=constants,
            run_id="run-test",
        )

    return _make


# =============================================================================
# Sample Stage Fixtures
# =============================================================================


def _deploy_treasury(ctx: StageContext) -> None:
    ctx.create("Treasury")


def _deploy_pool(ctx: StageContext) -> None:
    ctx.create("Pool", args=[ctx.unit("Treasury"), ctx.constants.address("usdc")])
    ctx.call("Treasury", "addPool", ctx.unit("Pool"), once=True)


@pytest.fixture
def treasury_stage() -> Stage:
    """Stage A: creates Treasury."""
    return Stage(name="A", procedure=_deploy_treasury, tags=frozenset({"core"}))


@pytest.fixture
def pool_stage() -> Stage:
    """Stage B: creates Pool referencing Treasury, registers it once."""
    return Stage(name="B", procedure=_deploy_pool, tags=frozenset({"pools"}))


@pytest.fixture
def local_stage() -> Stage:
    """Stage applying to local networks only."""
    return Stage(name="local", procedure=lambda ctx: ctx.create("Faucet"), applies_to=local_only)
