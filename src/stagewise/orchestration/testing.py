"""Test Harness — ledger doubles and assertions for stage sequences.

Manifesto:
Testing a deployment plan should not need a chain.  This module provides
in-memory ``LedgerClient`` doubles that confirm, reject or revert requests
on cue, plus assertion helpers over ``DeploymentResult``.

ARCHITECTURE
────────────
::

    Test doubles:
      FakeLedgerClient     → confirms everything; scriptable failures
      FailingLedgerClient  → raises on every request

    Assertion helpers:
      assert_deployment_completed(result)
      assert_deployment_failed(result, stage=None, error_type=None, error_contains=None)
      assert_stages_ran(result, *names)

    Factories:
      make_signer()        → deterministic Signer
      make_orchestrator()  → Orchestrator over a memory registry + FakeLedgerClient

Example::

    from stagewise.orchestration.testing import (
        FakeLedgerClient,
        assert_deployment_completed,
        make_orchestrator,
    )

    def test_plan_runs():
        orchestrator = make_orchestrator()
        result = orchestrator.run_all(stages, "localhost")
        assert_deployment_completed(result)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from stagewise.core.constants import ConstantTable
from stagewise.core.errors import DeployError
from stagewise.ledger.client import Deployment, LedgerClient, Receipt, Signer
from stagewise.orchestration.orchestrator import DeploymentResult, DeploymentStatus, Orchestrator, StageStatus
from stagewise.registry.registry import UnitRegistry

DEFAULT_TEST_SIGNER = "0x" + "ab" * 20


class LedgerRejected(RuntimeError):
    """Raised by the doubles to simulate a client-level failure."""


# ---------------------------------------------------------------------------
# Test doubles (LedgerClient implementations for testing)
# ---------------------------------------------------------------------------


class FakeLedgerClient:
    """LedgerClient that confirms every request unless told otherwise.

    Parameters
    ----------
    fail_kinds
        Unit kinds whose ``create`` raises ``LedgerRejected``.
    revert_kinds
        Unit kinds whose ``create`` returns a receipt with ``status=False``.
    fail_operations
        Operation names whose ``call`` raises ``LedgerRejected``.
    revert_operations
        Operation names whose ``call`` returns a reverted receipt.
    fail_at
        1-based request number (creates and calls counted together) that raises.

    Every request is recorded in :attr:`requests`; ``creates`` and
    ``calls`` are filtered views.  :meth:`heal` clears all failures so the
    same client can serve a re-run.
    """

    def __init__(
        self,
        *,
        fail_kinds: Iterable[str] = (),
        revert_kinds: Iterable[str] = (),
        fail_operations: Iterable[str] = (),
        revert_operations: Iterable[str] = (),
        fail_at: int | None = None,
    ) -> None:
        self.fail_kinds = set(fail_kinds)
        self.revert_kinds = set(revert_kinds)
        self.fail_operations = set(fail_operations)
        self.revert_operations = set(revert_operations)
        self.fail_at = fail_at
        self.requests: list[dict[str, Any]] = []
        self._counter = 0
        self._identities = 0

    @property
    def creates(self) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["type"] == "create"]

    @property
    def calls(self) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["type"] == "call"]

    def operations(self, identity: str | None = None) -> list[str]:
        """Operation names called so far, optionally on one identity."""
        return [c["operation"] for c in self.calls if identity is None or c["identity"] == identity]

    def heal(self) -> None:
        self.fail_kinds.clear()
        self.revert_kinds.clear()
        self.fail_operations.clear()
        self.revert_operations.clear()
        self.fail_at = None

    def _receipt(self, status: bool = True) -> Receipt:
        return Receipt(tx_hash=f"0x{self._counter:064x}", status=status, block_number=self._counter)

    def _check_fail_at(self, description: str) -> None:
        if self.fail_at is not None and self._counter == self.fail_at:
            raise LedgerRejected(f"request #{self._counter} rejected ({description})")

    def create(self, kind: str, args: Sequence[Any], signer: Signer) -> Deployment:
        self._counter += 1
        self._check_fail_at(f"create {kind}")
        if kind in self.fail_kinds:
            raise LedgerRejected(f"create {kind} rejected")

        self._identities += 1
        identity = f"0x{self._identities:040x}"
        receipt = self._receipt(status=kind not in self.revert_kinds)
        self.requests.append(
            {"type": "create", "kind": kind, "args": list(args), "identity": identity, "signer": signer.address}
        )
        return Deployment(identity=identity, receipt=receipt)

    def call(self, identity: str, operation: str, args: Sequence[Any], signer: Signer) -> Receipt:
        self._counter += 1
        self._check_fail_at(f"call {operation}")
        if operation in self.fail_operations:
            raise LedgerRejected(f"call {operation} rejected")

        receipt = self._receipt(status=operation not in self.revert_operations)
        self.requests.append(
            {
                "type": "call",
                "identity": identity,
                "operation": operation,
                "args": list(args),
                "signer": signer.address,
            }
        )
        return receipt


class FailingLedgerClient:
    """LedgerClient that raises on every request."""

    def __init__(self, message: str = "ledger unavailable") -> None:
        self.message = message
        self.attempts = 0

    def create(self, kind: str, args: Sequence[Any], signer: Signer) -> Deployment:
        self.attempts += 1
        raise LedgerRejected(self.message)

    def call(self, identity: str, operation: str, args: Sequence[Any], signer: Signer) -> Receipt:
        self.attempts += 1
        raise LedgerRejected(self.message)


# ---------------------------------------------------------------------------
# Assertion helpers
# ---------------------------------------------------------------------------


class DeploymentAssertionError(AssertionError):
    """Raised when a deployment assertion fails."""

    def __init__(self, message: str, result: DeploymentResult) -> None:
        self.result = result
        super().__init__(f"{message}\n  Network: {result.network.value}\n  Status: {result.status.value}")


def assert_deployment_completed(result: DeploymentResult) -> None:
    """Assert that every applicable stage completed."""
    if result.status != DeploymentStatus.COMPLETED:
        raise DeploymentAssertionError(
            f"Expected COMPLETED, got {result.status.value}"
            + (f" (error at '{result.error_stage}' step {result.error_step}: {result.error})" if result.error else ""),
            result,
        )


def assert_deployment_failed(
    result: DeploymentResult,
    stage: str | None = None,
    error_type: type[DeployError] | None = None,
    error_contains: str | None = None,
) -> None:
    """Assert that a deployment failed, optionally at ``stage`` with ``error_type``."""
    if result.status != DeploymentStatus.FAILED:
        raise DeploymentAssertionError(f"Expected FAILED, got {result.status.value}", result)
    if stage and result.error_stage != stage:
        raise DeploymentAssertionError(f"Expected failure at '{stage}', got '{result.error_stage}'", result)
    if error_type and not isinstance(result.error, error_type):
        raise DeploymentAssertionError(
            f"Expected {error_type.__name__}, got {type(result.error).__name__}",
            result,
        )
    if error_contains and (result.error is None or error_contains not in str(result.error)):
        raise DeploymentAssertionError(
            f"Expected error containing '{error_contains}', got: {result.error}",
            result,
        )


def assert_stages_ran(result: DeploymentResult, *stage_names: str) -> None:
    """Assert that exactly ``stage_names`` completed, in that order."""
    completed = [s.stage_name for s in result.stage_executions if s.status == StageStatus.COMPLETED]
    if completed != list(stage_names):
        raise DeploymentAssertionError(f"Expected stages {list(stage_names)}, ran {completed}", result)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_signer(address: str = DEFAULT_TEST_SIGNER, label: str = "creator") -> Signer:
    return Signer(address=address, label=label)


def make_orchestrator(
    *,
    registry: UnitRegistry | None = None,
    ledger: LedgerClient | None = None,
    signer: Signer | None = None,
    constants: ConstantTable | dict[str, Any] | None = None,
) -> Orchestrator:
    """Orchestrator with in-memory defaults."""
    if isinstance(constants, dict):
        constants = ConstantTable(constants)
    return Orchestrator(
        registry if registry is not None else UnitRegistry(),
        ledger if ledger is not None else FakeLedgerClient(),
        signer or make_signer(),
        constants=constants,
    )


__all__ = [
    "LedgerRejected",
    "FakeLedgerClient",
    "FailingLedgerClient",
    "DeploymentAssertionError",
    "assert_deployment_completed",
    "assert_deployment_failed",
    "assert_stages_ran",
    "make_signer",
    "make_orchestrator",
]
