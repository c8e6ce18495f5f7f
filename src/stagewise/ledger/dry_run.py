"""Dry-run ledger client — deterministic fake identities, no network.

Used by ``stagewise run --dry-run`` to exercise a full plan (ordering,
dependency lookups, constant resolution, registry writes) without touching a
ledger.  Identities derive from the signer, kind, args and a per-client
nonce, the way contract addresses derive from deployer and nonce, so two
dry runs of the same plan produce the same registry.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from stagewise.core.hashing import compute_hash
from stagewise.core.logging import get_logger
from stagewise.ledger.client import Deployment, Receipt, Signer

logger = get_logger(__name__)


class DryRunLedgerClient:
    """LedgerClient that confirms every request and records it."""

    def __init__(self, start_block: int = 1) -> None:
        self._nonce = 0
        self._block = start_block
        self.requests: list[dict[str, Any]] = []

    def _next_receipt(self, *parts: Any) -> Receipt:
        self._nonce += 1
        self._block += 1
        tx_hash = "0x" + compute_hash("tx", self._nonce, *parts)
        return Receipt(tx_hash=tx_hash, status=True, block_number=self._block, gas_used=0)

    def create(self, kind: str, args: Sequence[Any], signer: Signer) -> Deployment:
        receipt = self._next_receipt(signer.address, kind, list(args))
        identity = "0x" + compute_hash("unit", signer.address, self._nonce, kind, list(args), length=40)
        self.requests.append({"type": "create", "kind": kind, "args": list(args), "identity": identity})
        logger.debug("dry_run.create", kind=kind, identity=identity)
        return Deployment(identity=identity, receipt=receipt)

    def call(self, identity: str, operation: str, args: Sequence[Any], signer: Signer) -> Receipt:
        receipt = self._next_receipt(signer.address, identity, operation, list(args))
        self.requests.append(
            {"type": "call", "identity": identity, "operation": operation, "args": list(args)}
        )
        logger.debug("dry_run.call", identity=identity, operation=operation)
        return receipt
