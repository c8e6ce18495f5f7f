"""
stagewise.ledger — the ledger client interface and a dry-run implementation.
"""

from stagewise.ledger.client import Deployment, LedgerClient, Receipt, Signer
from stagewise.ledger.dry_run import DryRunLedgerClient

__all__ = ["Deployment", "LedgerClient", "Receipt", "Signer", "DryRunLedgerClient"]
