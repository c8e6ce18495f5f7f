"""Ledger Client — the external interface the engine submits requests to.

stagewise never talks to a ledger itself.  Anything that implements
``LedgerClient`` can be plugged into the orchestrator: a JSON-RPC client,
a hardhat bridge, or the in-memory doubles in
:mod:`stagewise.orchestration.testing`.

ARCHITECTURE
────────────
::

    LedgerClient (Protocol)
      ├── create(kind, args, signer)            → Deployment(identity, receipt)
      └── call(identity, operation, args, signer) → Receipt

    Signer      ── explicit account submitting the request (never ambient)
    Receipt     ── confirmation of a request (status False = reverted)
    Deployment  ── identity of the created unit + its receipt

Both methods are blocking round-trips.  Any exception they raise, or a
receipt with ``status=False``, is terminal for the current stage.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class Signer:
    """Account on whose behalf create/call requests are submitted."""

    address: str
    label: str = "creator"

    def __str__(self) -> str:
        return f"{self.label}<{self.address}>"


@dataclass(frozen=True)
class Receipt:
    """Confirmation of a submitted create/call request."""

    tx_hash: str
    status: bool = True
    block_number: int | None = None
    gas_used: int | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Deployment:
    """Outcome of a successful create request."""

    identity: str
    receipt: Receipt


@runtime_checkable
class LedgerClient(Protocol):
    """Executes create and call requests against the target environment."""

    def create(self, kind: str, args: Sequence[Any], signer: Signer) -> Deployment:
        """Create a unit from template ``kind`` with constructor ``args``."""
        ...

    def call(self, identity: str, operation: str, args: Sequence[Any], signer: Signer) -> Receipt:
        """Invoke ``operation`` on the unit at ``identity``."""
        ...
