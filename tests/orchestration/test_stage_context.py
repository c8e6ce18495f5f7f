"""Tests for StageContext — create/call steps, reuse, once-journal, failure mapping."""

from __future__ import annotations

from decimal import Decimal

import pytest

from stagewise.core.errors import RemoteFailure, UnitAlreadyExistsError, UnitNotFoundError
from stagewise.ledger.client import Receipt
from stagewise.orchestration.testing import FakeLedgerClient, LedgerRejected


class TestCreate:
    def test_creates_and_records(self, make_context, registry, ledger, signer):
        ctx = make_context("main")
        unit = ctx.create("Treasury")

        assert registry.get("Treasury").identity == unit.identity
        assert unit.kind == "Treasury"
        assert unit.stage == "main"
        assert ledger.creates == [
            {"type": "create", "kind": "Treasury", "args": [], "identity": unit.identity, "signer": signer.address}
        ]
        assert ctx.stats.units_created == ["Treasury"]

    def test_kind_override(self, make_context, ledger):
        unit = make_context().create("PoolUSDC", kind="Pool")
        assert unit.kind == "Pool"
        assert ledger.creates[0]["kind"] == "Pool"

    def test_unit_args_resolve_to_identity(self, make_context, ledger):
        ctx = make_context()
        treasury = ctx.create("Treasury")
        pool = ctx.create("Pool", args=[treasury, ctx.constants.address("usdc")])

        assert pool.creation_args == [treasury.identity, ctx.constants.address("usdc")]
        assert ledger.creates[1]["args"][0] == treasury.identity

    def test_non_unit_args_sent_as_given(self, make_context, ledger):
        args = [Decimal("1.5"), 0.25, (1, 2)]
        pool = make_context().create("Pool", args=args)

        sent = ledger.creates[0]["args"]
        assert sent == [Decimal("1.5"), 0.25, (1, 2)]
        assert isinstance(sent[0], Decimal)
        assert isinstance(sent[2], tuple)
        assert pool.creation_args == ["1.5", "0.25", [1, 2]]

        again = make_context().create("Pool", args=args)
        assert again.identity == pool.identity
        assert len(ledger.creates) == 1

    def test_existing_unit_reused_without_request(self, make_context, ledger):
        first = make_context("main").create("Treasury")
        ctx = make_context("main")
        again = ctx.create("Treasury")

        assert again.identity == first.identity
        assert len(ledger.creates) == 1
        assert ctx.stats.units_reused == ["Treasury"]
        assert ctx.stats.units_created == []

    def test_drift_raises_before_request(self, make_context, ledger):
        make_context().create("Pool", args=[1])
        ctx = make_context("B")
        with pytest.raises(UnitAlreadyExistsError) as exc_info:
            ctx.create("Pool", args=[2])

        assert len(ledger.creates) == 1
        assert exc_info.value.context.stage == "B"
        assert exc_info.value.context.step == 1

    def test_steps_are_numbered(self, make_context):
        ctx = make_context()
        assert ctx.step == 0
        ctx.create("Treasury")
        ctx.create("Dollar")
        ctx.call("Treasury", "initialize", ctx.unit("Dollar"))
        assert ctx.step == 3


class TestCreateFailures:
    def test_client_exception_becomes_remote_failure(self, make_context, registry):
        ctx = make_context("C")
        ctx.ledger.fail_kinds.add("Vault")

        with pytest.raises(RemoteFailure) as exc_info:
            ctx.create("Vault")

        err = exc_info.value
        assert isinstance(err.cause, LedgerRejected)
        assert err.context.stage == "C"
        assert err.context.step == 1
        assert err.context.unit == "Vault"
        assert err.context.operation == "create"
        assert err.context.network == "localhost"
        assert err.context.run_id == "run-test"
        assert not registry.has("Vault")

    def test_reverted_receipt_becomes_remote_failure(self, make_context, registry):
        ctx = make_context()
        ctx.ledger.revert_kinds.add("Vault")

        with pytest.raises(RemoteFailure) as exc_info:
            ctx.create("Vault")

        assert "tx_hash" in exc_info.value.context.metadata
        assert not registry.has("Vault")


class TestLookups:
    def test_unit_and_address(self, make_context):
        ctx = make_context()
        treasury = ctx.create("Treasury")
        assert ctx.unit("Treasury") == treasury
        assert ctx.address("Treasury") == treasury.identity
        assert ctx.has("Treasury")
        assert not ctx.has("Pool")

    def test_missing_unit_annotated(self, make_context):
        ctx = make_context("oracles")
        ctx.create("Dollar")
        with pytest.raises(UnitNotFoundError) as exc_info:
            ctx.unit("Share")

        err = exc_info.value
        assert err.context.unit == "Share"
        assert err.context.stage == "oracles"
        assert err.context.step == 1


class TestCall:
    def test_submits_call(self, make_context, ledger):
        ctx = make_context()
        treasury = ctx.create("Treasury")
        receipt = ctx.call("Treasury", "setOperator", ctx.constants.address("operator"))

        assert isinstance(receipt, Receipt)
        assert ledger.calls[-1]["identity"] == treasury.identity
        assert ledger.calls[-1]["operation"] == "setOperator"
        assert ledger.calls[-1]["args"] == [ctx.constants.address("operator")]
        assert ctx.stats.calls_made == 1

    def test_nested_units_resolved_other_args_kept(self, make_context, ledger, registry):
        ctx = make_context()
        treasury = ctx.create("Treasury")
        router = ctx.create("Router")
        ctx.call("Router", "setRoute", (treasury, 3), Decimal("0.1"), once=True)

        sent = ledger.calls[-1]["args"]
        assert sent == [(treasury.identity, 3), Decimal("0.1")]
        assert isinstance(sent[0], tuple)
        assert registry.calls()[0].args == [[treasury.identity, 3], "0.1"]
        assert ledger.calls[-1]["identity"] == router.identity

        assert make_context().call("Router", "setRoute", (treasury, 3), Decimal("0.1"), once=True) is None
        assert ledger.operations() == ["setRoute"]

    def test_unguarded_calls_repeat(self, make_context, ledger):
        make_context().create("Treasury")
        make_context().call("Treasury", "setOperator", "0x01")
        make_context().call("Treasury", "setOperator", "0x01")
        assert ledger.operations() == ["setOperator", "setOperator"]

    def test_target_must_exist(self, make_context, ledger):
        ctx = make_context("main")
        with pytest.raises(UnitNotFoundError) as exc_info:
            ctx.call("Treasury", "initialize")

        assert ledger.calls == []
        assert exc_info.value.context.operation == "initialize"
        assert exc_info.value.context.step == 1

    def test_client_exception(self, make_context):
        ctx = make_context("main")
        ctx.create("Pool")
        ctx.ledger.fail_operations.add("toggleMinting")

        with pytest.raises(RemoteFailure) as exc_info:
            ctx.call("Pool", "toggleMinting")

        assert exc_info.value.context.operation == "toggleMinting"
        assert exc_info.value.context.step == 2

    def test_reverted_receipt(self, make_context):
        ctx = make_context()
        ctx.create("Pool")
        ctx.ledger.revert_operations.add("initialize")
        with pytest.raises(RemoteFailure):
            ctx.call("Pool", "initialize")


class TestOnceCalls:
    def test_journaled_and_skipped(self, make_context, registry, ledger):
        make_context("main").create("Pool")

        first = make_context("main").call("Pool", "toggleMinting", once=True)
        ctx = make_context("main")
        second = ctx.call("Pool", "toggleMinting", once=True)

        assert isinstance(first, Receipt)
        assert second is None
        assert ledger.operations() == ["toggleMinting"]
        assert ctx.stats.calls_skipped == 1
        assert len(registry.calls()) == 1
        assert registry.calls()[0].operation == "toggleMinting"

    def test_key_includes_args(self, make_context, ledger):
        ctx = make_context("farm-0-start")
        ctx.create("MasterChef")
        ctx.call("MasterChef", "add", 25000, "0x01", once=True)
        ctx.call("MasterChef", "add", 75000, "0x02", once=True)
        assert ledger.operations() == ["add", "add"]

    def test_key_includes_stage(self, make_context):
        ctx_a = make_context("a")
        ctx_b = make_context("b")
        assert ctx_a.call_key("Pool", "toggle", []) != ctx_b.call_key("Pool", "toggle", [])

    def test_failed_once_call_not_journaled(self, make_context, registry):
        make_context().create("Pool")
        ctx = make_context()
        ctx.ledger.fail_operations.add("toggleMinting")
        with pytest.raises(RemoteFailure):
            ctx.call("Pool", "toggleMinting", once=True)
        assert registry.calls() == []


class TestClientRaisedDeployError:
    def test_deploy_error_from_client_passes_through(self, registry, signer, constants):
        """A DeployError raised by the client is annotated, not re-wrapped."""
        from stagewise.core.errors import ConfigError
        from stagewise.core.network import Network
        from stagewise.orchestration.context import StageContext

        class Misconfigured(FakeLedgerClient):
            def create(self, kind, args, signer):
                raise ConfigError("no RPC url")

        ctx = StageContext(
            "main", registry=registry, ledger=Misconfigured(), signer=signer, network=Network.HARDHAT
        )
        with pytest.raises(ConfigError) as exc_info:
            ctx.create("Treasury")
        assert exc_info.value.context.stage == "main"
        assert exc_info.value.context.network == "hardhat"
