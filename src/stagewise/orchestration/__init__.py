"""
stagewise.orchestration — stages, the per-stage context and the orchestrator.

Example::

    from stagewise.orchestration import Orchestrator, stage
    from stagewise.core.network import local_only

    @stage("main", applies_to=local_only, tags={"main"})
    def deploy_main(ctx):
        ctx.create("Treasury")

    result = Orchestrator(registry, ledger, signer).run_all([deploy_main], "localhost")
"""

from stagewise.orchestration.context import StageContext, StageStats
from stagewise.orchestration.orchestrator import (
    DeploymentResult,
    DeploymentStatus,
    Orchestrator,
    StageExecution,
    StageStatus,
    run_all,
)
from stagewise.orchestration.planner import PlanEntry, PlanResult, plan_run
from stagewise.orchestration.stage import Procedure, Stage, stage, validate_stage_names

__all__ = [
    "StageContext",
    "StageStats",
    "DeploymentResult",
    "DeploymentStatus",
    "Orchestrator",
    "StageExecution",
    "StageStatus",
    "run_all",
    "PlanEntry",
    "PlanResult",
    "plan_run",
    "Procedure",
    "Stage",
    "stage",
    "validate_stage_names",
]
