"""Stage Context — what a stage procedure uses to create and wire units.

The orchestrator builds one ``StageContext`` per stage invocation, bound to
the registry, ledger client, signer, network and constant table.  Every
``create``/``call`` is a numbered step executed strictly after the previous
one returns; nothing is pipelined or reordered.

Create step::

    ctx.create("PoolUSDC", kind="Pool", args=[ctx.unit("Treasury")])
      │
      ├── registry.lock("PoolUSDC")
      ├── registry.check(...)   existing + same fingerprint → reuse, no request
      │                         existing + other fingerprint → UnitAlreadyExistsError
      ├── ledger.create(kind, args, signer)
      └── registry.create(...)  persisted before returning

Call step::

    ctx.call("Treasury", "addPool", ctx.address("PoolUSDC"), once=True)
      │
      ├── registry.get("Treasury")          UnitNotFoundError if absent
      ├── once=True and journaled? → skip
      ├── ledger.call(identity, op, args, signer)
      └── once=True → journal CallRecord

Unit arguments are replaced by their identity; the ledger receives every other
argument as given, while fingerprints and journal keys use the canonical form.

Ledger exceptions and reverted receipts become ``RemoteFailure``; every
error leaving the context carries stage name and step index.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from stagewise.core.constants import ConstantTable
from stagewise.core.errors import DeployError, RemoteFailure
from stagewise.core.hashing import canonicalize, compute_hash
from stagewise.core.logging import get_logger
from stagewise.core.network import Network
from stagewise.ledger.client import LedgerClient, Receipt, Signer
from stagewise.registry.models import CallRecord, Unit
from stagewise.registry.registry import UnitRegistry

logger = get_logger(__name__)


def _resolve_units(value: Any) -> Any:
    """Replace units by their identity; every other value is passed through as given."""
    identity = getattr(value, "identity", None)
    if isinstance(identity, str):
        return identity
    if isinstance(value, Mapping):
        return {key: _resolve_units(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_resolve_units(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_resolve_units(item) for item in value)
    return value


@dataclass
class StageStats:
    """Counters for one stage invocation."""

    units_created: list[str] = field(default_factory=list)
    units_reused: list[str] = field(default_factory=list)
    calls_made: int = 0
    calls_skipped: int = 0


class StageContext:
    """Per-invocation handle given to a stage procedure."""

    def __init__(
        self,
        stage_name: str,
        *,
        registry: UnitRegistry,
        ledger: LedgerClient,
        signer: Signer,
        network: Network,
        constants: ConstantTable | None = None,
        run_id: str | None = None,
    ) -> None:
        self.stage_name = stage_name
        self.registry = registry
        self.ledger = ledger
        self.signer = signer
        self.network = network
        self.constants = constants if constants is not None else ConstantTable()
        self.run_id = run_id
        self.stats = StageStats()
        self._step = 0

    @property
    def step(self) -> int:
        """Index of the current (or last) step, 1-based; 0 before any step."""
        return self._step

    # =========================================================================
    # Lookups
    # =========================================================================

    def unit(self, name: str) -> Unit:
        """Fetch a previously created unit (UnitNotFoundError if absent)."""
        try:
            return self.registry.get(name)
        except DeployError as e:
            self._annotate(e, unit=name)
            raise

    def address(self, name: str) -> str:
        """Identity of a previously created unit."""
        return self.unit(name).identity

    def has(self, name: str) -> bool:
        return self.registry.has(name)

    # =========================================================================
    # Steps
    # =========================================================================

    def create(self, name: str, kind: str | None = None, args: Sequence[Any] = ()) -> Unit:
        """Create unit ``name`` from template ``kind`` (defaults to ``name``)."""
        kind = kind or name
        self._step += 1
        resolved = _resolve_units(list(args))
        canonicalize(resolved)  # unsupported argument types fail before any request

        try:
            with self.registry.lock(name):
                existing = self.registry.check(name, kind, resolved)
                if existing is not None:
                    self.stats.units_reused.append(name)
                    logger.info(
                        "unit.reused",
                        stage=self.stage_name,
                        step=self._step,
                        unit=name,
                        identity=existing.identity,
                    )
                    return existing

                logger.info("unit.creating", stage=self.stage_name, step=self._step, unit=name, kind=kind)
                deployment = self._submit(
                    lambda: self.ledger.create(kind, resolved, self.signer),
                    unit=name,
                    operation="create",
                )
                unit = self.registry.create(
                    name,
                    kind,
                    resolved,
                    deployment.identity,
                    receipt=deployment.receipt,
                    stage=self.stage_name,
                )
        except DeployError as e:
            self._annotate(e, unit=name, operation="create")
            raise

        self.stats.units_created.append(name)
        logger.info(
            "unit.created",
            stage=self.stage_name,
            step=self._step,
            unit=name,
            kind=kind,
            identity=unit.identity,
            tx_hash=deployment.receipt.tx_hash,
        )
        return unit

    def call(self, name: str, operation: str, *args: Any, once: bool = False) -> Receipt | None:
        """Invoke ``operation`` on unit ``name``.

        With ``once=True`` the call is journaled in the registry and skipped
        (returning None) when the same stage/unit/operation/args was already
        confirmed by an earlier run.  Use it for calls that are not
        idempotent at the target (initializers, toggles, appends).
        """
        self._step += 1
        resolved = _resolve_units(list(args))
        canonical = canonicalize(resolved)

        try:
            target = self.registry.get(name)
            key = self.call_key(name, operation, canonical) if once else None
            if key is not None and self.registry.has_call(key):
                self.stats.calls_skipped += 1
                logger.info(
                    "call.skipped",
                    stage=self.stage_name,
                    step=self._step,
                    unit=name,
                    operation=operation,
                    reason="already_applied",
                )
                return None

            logger.info("call.submitted", stage=self.stage_name, step=self._step, unit=name, operation=operation)
            receipt = self._submit(
                lambda: self.ledger.call(target.identity, operation, resolved, self.signer),
                unit=name,
                operation=operation,
            )
            if key is not None:
                self.registry.record_call(
                    CallRecord(
                        key=key,
                        stage=self.stage_name,
                        unit=name,
                        operation=operation,
                        args=canonical,
                        receipt=receipt,
                    )
                )
        except DeployError as e:
            self._annotate(e, unit=name, operation=operation)
            raise

        self.stats.calls_made += 1
        return receipt

    def call_key(self, name: str, operation: str, args: Sequence[Any]) -> str:
        """Journal key of a once-guarded call."""
        return compute_hash(self.stage_name, name, operation, list(args), length=32)

    # =========================================================================
    # Internals
    # =========================================================================

    def _submit(self, request: Callable[[], Any], *, unit: str, operation: str) -> Any:
        """Run one ledger round-trip, normalising failures to RemoteFailure."""
        try:
            outcome = request()
        except DeployError:
            raise
        except Exception as e:
            raise RemoteFailure(
                f"Ledger rejected {operation} on {unit}: {e}",
                cause=e,
            ) from e

        receipt = outcome if isinstance(outcome, Receipt) else getattr(outcome, "receipt", None)
        if receipt is not None and not receipt.status:
            raise RemoteFailure(
                f"Ledger reported failure for {operation} on {unit} (tx {receipt.tx_hash})"
            ).with_context(tx_hash=receipt.tx_hash)
        return outcome

    def _annotate(self, error: DeployError, **fields: Any) -> DeployError:
        return error.with_context(
            stage=self.stage_name,
            step=self._step,
            network=self.network.value,
            run_id=self.run_id,
            **fields,
        )

    def __repr__(self) -> str:
        return f"StageContext({self.stage_name!r}, network={self.network.value}, step={self._step})"


__all__ = ["StageContext", "StageStats"]
