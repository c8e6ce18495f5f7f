"""End-to-end tests for the tower plan over FakeLedgerClient."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from stagewise.core.constants import ConstantTable
from stagewise.core.errors import RemoteFailure
from stagewise.core.network import Network
from stagewise.orchestration.orchestrator import Orchestrator
from stagewise.orchestration.testing import (
    FakeLedgerClient,
    assert_deployment_completed,
    assert_deployment_failed,
    assert_stages_ran,
)
from stagewise.plans import tower

STAGE_NAMES = [
    "main",
    "spot-price",
    "oracles",
    "zap",
    "farm-0",
    "farm-1",
    "vaults",
    "farm-0-start",
    "farm-1-start",
]
UNIT_COUNT = 22
ONCE_CALLS = 24
UNGUARDED_CALLS = 15

TOWER_TOML = Path(__file__).resolve().parents[2] / "examples" / "tower.toml"


@pytest.fixture
def orchestrator(registry, ledger, signer) -> Orchestrator:
    return Orchestrator(registry, ledger, signer, constants=tower.default_constants())


class TestPlanShape:
    def test_stage_order(self):
        assert [s.name for s in tower.build_stages()] == STAGE_NAMES

    def test_build_returns_fresh_list(self):
        stages = tower.build_stages()
        stages.pop()
        assert len(tower.build_stages()) == len(STAGE_NAMES)

    def test_default_constants(self):
        table = tower.default_constants()
        assert isinstance(table, ConstantTable)
        assert table.address("usdc") == tower.LOCALHOST_CONSTANTS["usdc"]


class TestFullRun:
    def test_localhost(self, orchestrator, registry, ledger):
        result = orchestrator.run_all(tower.build_stages(), Network.LOCALHOST)

        assert_deployment_completed(result)
        assert_stages_ran(result, *STAGE_NAMES)
        assert len(registry) == UNIT_COUNT
        assert len(ledger.creates) == UNIT_COUNT
        assert len(ledger.calls) == ONCE_CALLS + UNGUARDED_CALLS
        assert len(registry.calls()) == ONCE_CALLS

    def test_main_stage_units(self, orchestrator):
        result = orchestrator.run_all(tower.build_stages(), "localhost")
        assert result.execution("main").units_created == [
            "Timelock",
            "Multicall",
            "Treasury",
            "TreasuryPolicy",
            "CollateralRatioPolicy",
            "CollateralReserve",
            "TreasuryFund",
            "Dollar",
            "Share",
            "PoolUSDC",
            "ConsolidatedFund",
        ]

    def test_dependencies_resolved_to_identities(self, orchestrator, registry, ledger):
        orchestrator.run_all(tower.build_stages(), "localhost")

        share = registry.get("Share").identity
        fund = registry.get("ConsolidatedFund").identity
        farm = registry.get("MasterChef_IVORY_0")
        assert farm.kind == "MasterChef"
        assert farm.creation_args[:2] == [share, fund]

        dollar_oracle = registry.get("DollarOracle")
        assert dollar_oracle.creation_args == [
            registry.get("Dollar").identity,
            registry.get("PairOracle_DOLLAR_USDC").identity,
            registry.get("CollateralOracle").identity,
            12,
        ]

        treasury = registry.get("Treasury").identity
        pool = registry.get("PoolUSDC").identity
        add_pool = [c for c in ledger.calls if c["identity"] == treasury and c["operation"] == "addPool"]
        assert add_pool[0]["args"] == [pool]

    def test_farm_reward_per_block(self, orchestrator, registry):
        orchestrator.run_all(tower.build_stages(), "localhost")
        for index in (0, 1):
            args = registry.get(f"MasterChef_IVORY_{index}").creation_args
            assert args[2] == 383562 * 10**18 // 43200
            assert args[3] == 0

    def test_policy_fees_in_ppm(self, orchestrator, registry, ledger):
        orchestrator.run_all(tower.build_stages(), "localhost")
        policy = registry.get("TreasuryPolicy").identity
        init = [c for c in ledger.calls if c["identity"] == policy][0]
        assert init["operation"] == "initialize"
        assert init["args"][1:] == [3000, 4000, 150_000, 800_000, 150_000]

    def test_farm_allocations(self, orchestrator, registry, ledger):
        orchestrator.run_all(tower.build_stages(), "localhost")
        farm = registry.get("MasterChef_IVORY_0").identity
        adds = [c["args"] for c in ledger.calls if c["identity"] == farm and c["operation"] == "add"]
        assert adds == [
            [25_000, registry.get("Share").identity],
            [75_000, tower.LOCALHOST_CONSTANTS["lp_share_usdc"]],
        ]

    def test_timelock_delay(self, orchestrator, registry, signer):
        orchestrator.run_all(tower.build_stages(), "localhost")
        assert registry.get("Timelock").creation_args == [signer.address, 43_200]

    def test_live_network_skips_everything(self, orchestrator, registry, ledger):
        result = orchestrator.run_all(tower.build_stages(), "mumbai")
        assert result.succeeded
        assert result.skipped_stages == STAGE_NAMES
        assert len(registry) == 0
        assert ledger.requests == []


class TestRerun:
    def test_second_run_creates_nothing(self, orchestrator, registry, ledger):
        stages = tower.build_stages()
        orchestrator.run_all(stages, "localhost")
        snapshot = registry.snapshot()
        requests = len(ledger.requests)

        second = orchestrator.run_all(stages, "localhost")

        assert_deployment_completed(second)
        assert registry.snapshot() == snapshot
        new = ledger.requests[requests:]
        assert [r for r in new if r["type"] == "create"] == []
        assert len(new) == UNGUARDED_CALLS
        assert sum(e.calls_skipped for e in second.stage_executions) == ONCE_CALLS
        assert {"initialize", "toggleMinting"}.isdisjoint(r["operation"] for r in new)

    def test_resume_after_zap_failure(self, registry, signer):
        ledger = FakeLedgerClient(fail_kinds={"ZapPool"})
        orchestrator = Orchestrator(registry, ledger, signer, constants=tower.default_constants())

        first = orchestrator.run_all(tower.build_stages(), "localhost")
        assert_deployment_failed(first, stage="zap", error_type=RemoteFailure)
        assert first.error_step == 1
        assert first.completed_stages == ["main", "spot-price", "oracles"]
        assert not registry.has("ZapPool")
        treasury = registry.get("Treasury").identity
        created_before = len(ledger.creates)

        ledger.heal()
        second = orchestrator.run_all(tower.build_stages(), "localhost")

        assert_deployment_completed(second)
        assert registry.get("Treasury").identity == treasury
        assert len(ledger.creates) - created_before == 5
        assert len(registry) == UNIT_COUNT
        assert second.execution("main").units_created == []


class InitializeOnceLedger(FakeLedgerClient):
    """Reverts a second ``initialize`` on the same identity."""

    def __init__(self) -> None:
        super().__init__()
        self.initialized: set[str] = set()

    def call(self, identity, operation, args, signer):
        receipt = super().call(identity, operation, args, signer)
        if operation == "initialize":
            if identity in self.initialized:
                return dataclasses.replace(receipt, status=False)
            self.initialized.add(identity)
        return receipt


class TestRerunAgainstStatefulUnits:
    def test_initializers_not_repeated(self, registry, signer):
        ledger = InitializeOnceLedger()
        orchestrator = Orchestrator(registry, ledger, signer, constants=tower.default_constants())

        first = orchestrator.run_all(tower.build_stages(), "localhost")
        second = orchestrator.run_all(tower.build_stages(), "localhost")

        assert_deployment_completed(first)
        assert_deployment_completed(second)
        assert ledger.operations().count("initialize") == len(ledger.initialized) == 11

    def test_resume_after_failure_past_initialize(self, registry, signer):
        ledger = InitializeOnceLedger()
        ledger.fail_operations.add("setOracleDollar")
        orchestrator = Orchestrator(registry, ledger, signer, constants=tower.default_constants())

        first = orchestrator.run_all(tower.build_stages(), "localhost")
        assert_deployment_failed(first, stage="oracles", error_type=RemoteFailure)

        ledger.heal()
        second = orchestrator.run_all(tower.build_stages(), "localhost")

        assert_deployment_completed(second)
        assert second.execution("main").calls_skipped == 12


class TestTomlConstants:
    def test_file_matches_defaults(self):
        table = ConstantTable.from_toml(TOWER_TOML, "localhost")
        assert dict(table) == tower.LOCALHOST_CONSTANTS

    def test_hardhat_override(self, registry, ledger, signer):
        table = ConstantTable.from_toml(TOWER_TOML, "hardhat")
        result = Orchestrator(registry, ledger, signer, constants=table).run_all(tower.build_stages(), "hardhat")
        assert_deployment_completed(result)
        assert registry.get("Timelock").creation_args == [signer.address, 0]

    def test_missing_constant(self, registry, ledger, signer):
        table = tower.default_constants()
        values = {k: v for k, v in table.items() if k != "operator"}
        result = Orchestrator(registry, ledger, signer, constants=ConstantTable(values)).run_all(
            tower.build_stages(), "localhost"
        )
        assert_deployment_failed(result, stage="main", error_contains="operator")
        assert len(registry) == 0
