"""
stagewise — staged, re-runnable deployment of named units.

A deployment is an ordered list of stages.  Each stage creates named units
through a ledger client and wires them with configuration calls; a durable
registry maps unit names to identities so the whole sequence can be re-run
after a partial failure without creating anything twice.

Example::

    from stagewise import Orchestrator, Signer, UnitRegistry
    from stagewise.ledger import DryRunLedgerClient
    from stagewise.plans.tower import build_stages, default_constants

    orchestrator = Orchestrator(
        UnitRegistry(),
        DryRunLedgerClient(),
        Signer("0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"),
        constants=default_constants(),
    )
    result = orchestrator.run_all(build_stages(), "localhost")
    result.raise_for_status()
"""

__version__ = "0.1.0"

from stagewise.core.constants import ConstantTable
from stagewise.core.errors import (
    DeployError,
    RemoteFailure,
    UnitAlreadyExistsError,
    UnitNotFoundError,
)
from stagewise.core.network import Network
from stagewise.ledger.client import LedgerClient, Receipt, Signer
from stagewise.orchestration import DeploymentResult, Orchestrator, Stage, StageContext, run_all, stage
from stagewise.registry import UnitRegistry

__all__ = [
    "__version__",
    "ConstantTable",
    "DeployError",
    "RemoteFailure",
    "UnitAlreadyExistsError",
    "UnitNotFoundError",
    "Network",
    "LedgerClient",
    "Receipt",
    "Signer",
    "DeploymentResult",
    "Orchestrator",
    "Stage",
    "StageContext",
    "run_all",
    "stage",
    "UnitRegistry",
]
