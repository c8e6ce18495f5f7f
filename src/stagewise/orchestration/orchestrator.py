"""Orchestrator — runs a stage sequence against one network, in order.

The Orchestrator takes an ordered sequence of :class:`~stagewise.orchestration.stage.Stage`
and executes each applicable one through a fresh
:class:`~stagewise.orchestration.context.StageContext`.  It handles:

- **Network gating** — stages whose filter excludes the target are skipped
- **Tag selection** — optional ``tags`` limit the run to matching stages
- **Halt on first failure** — later stages assume earlier ones succeeded
- **Result aggregation** — per-stage executions, failing stage/step/error

Re-running is the recovery mechanism: creation is idempotent by name and
``once``-guarded calls are journaled, so a second ``run_all`` over a
partially populated registry performs only the remaining work.  Calls that
are not idempotent at the target and not guarded with ``once=True`` are the
stage author's responsibility.

Example::

    from stagewise.orchestration import Orchestrator
    from stagewise.core.network import Network

    orchestrator = Orchestrator(registry, ledger, signer, constants=table)
    result = orchestrator.run_all(stages, Network.LOCALHOST)

    if result.succeeded:
        print(f"Deployed {len(result.completed_stages)} stages")
    else:
        print(f"Failed at {result.error_stage} step {result.error_step}: {result.error}")
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from stagewise.core.constants import ConstantTable
from stagewise.core.errors import DeployError, as_deploy_error
from stagewise.core.logging import LogContext, get_logger
from stagewise.core.network import Network
from stagewise.ledger.client import LedgerClient, Signer
from stagewise.orchestration.context import StageContext
from stagewise.orchestration.stage import Stage, validate_stage_names
from stagewise.registry.registry import UnitRegistry

logger = get_logger(__name__)


class DeploymentStatus(str, Enum):
    """Overall status of a deployment run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StageStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StageExecution:
    """Outcome of one stage within a run."""

    stage_name: str
    status: StageStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    units_created: list[str] = field(default_factory=list)
    units_reused: list[str] = field(default_factory=list)
    calls_made: int = 0
    calls_skipped: int = 0
    error: DeployError | None = None
    reason: str | None = None  # why a stage was skipped

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging/storage."""
        return {
            "stage_name": self.stage_name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "units_created": list(self.units_created),
            "units_reused": list(self.units_reused),
            "calls_made": self.calls_made,
            "calls_skipped": self.calls_skipped,
            "error": self.error.to_dict() if self.error else None,
            "reason": self.reason,
        }


@dataclass
class DeploymentResult:
    """Result of ``run_all``."""

    network: Network
    run_id: str
    status: DeploymentStatus
    started_at: datetime
    completed_at: datetime | None = None
    stage_executions: list[StageExecution] = field(default_factory=list)
    error_stage: str | None = None
    error_step: int | None = None
    error: DeployError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == DeploymentStatus.COMPLETED

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def completed_stages(self) -> list[str]:
        return [s.stage_name for s in self.stage_executions if s.status == StageStatus.COMPLETED]

    @property
    def skipped_stages(self) -> list[str]:
        return [s.stage_name for s in self.stage_executions if s.status == StageStatus.SKIPPED]

    @property
    def units_created(self) -> list[str]:
        return [name for s in self.stage_executions for name in s.units_created]

    def execution(self, stage_name: str) -> StageExecution | None:
        for execution in self.stage_executions:
            if execution.stage_name == stage_name:
                return execution
        return None

    def raise_for_status(self) -> None:
        """Re-raise the failing stage's error, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging/storage."""
        return {
            "network": self.network.value,
            "run_id": self.run_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "completed_stages": self.completed_stages,
            "skipped_stages": self.skipped_stages,
            "error_stage": self.error_stage,
            "error_step": self.error_step,
            "error": self.error.to_dict() if self.error else None,
            "stage_executions": [s.to_dict() for s in self.stage_executions],
        }


class Orchestrator:
    """Executes stage sequences strictly in order, halting on first failure."""

    def __init__(
        self,
        registry: UnitRegistry,
        ledger: LedgerClient,
        signer: Signer,
        constants: ConstantTable | None = None,
    ) -> None:
        self.registry = registry
        self.ledger = ledger
        self.signer = signer
        self.constants = constants if constants is not None else ConstantTable()

    def run_all(
        self,
        stages: Sequence[Stage],
        network: Network | str,
        *,
        tags: Iterable[str] | None = None,
        run_id: str | None = None,
    ) -> DeploymentResult:
        """
        Run every applicable stage in declared order.

        Args:
            stages: Ordered stage sequence
            network: Target network
            tags: Optional tag filter; stages without a matching tag are skipped
            run_id: Explicit run identifier (generated if omitted)

        Returns:
            DeploymentResult with final status and per-stage executions
        """
        validate_stage_names(stages)
        network = Network.parse(network)
        tag_filter = frozenset(tags or ())
        run_id = run_id or uuid.uuid4().hex[:12]

        result = DeploymentResult(
            network=network,
            run_id=run_id,
            status=DeploymentStatus.RUNNING,
            started_at=datetime.now(UTC),
        )

        logger.info(
            "deploy.start",
            network=network.value,
            run_id=run_id,
            stage_count=len(stages),
            tags=sorted(tag_filter) or None,
            signer=self.signer.address,
        )

        for stage in stages:
            if not stage.applies(network):
                result.stage_executions.append(
                    StageExecution(stage_name=stage.name, status=StageStatus.SKIPPED, reason="network")
                )
                logger.info("stage.skipped", stage=stage.name, reason="network", filter=stage.applies_to.label)
                continue

            if not stage.matches_tags(tag_filter):
                result.stage_executions.append(
                    StageExecution(stage_name=stage.name, status=StageStatus.SKIPPED, reason="tags")
                )
                logger.debug("stage.skipped", stage=stage.name, reason="tags")
                continue

            execution = self._run_stage(stage, network, run_id)
            result.stage_executions.append(execution)

            if execution.status == StageStatus.FAILED:
                result.status = DeploymentStatus.FAILED
                result.error = execution.error
                result.error_stage = stage.name
                result.error_step = execution.error.context.step if execution.error else None
                break
        else:
            result.status = DeploymentStatus.COMPLETED

        result.completed_at = datetime.now(UTC)

        logger.info(
            "deploy.complete",
            network=network.value,
            run_id=run_id,
            status=result.status.value,
            duration_seconds=result.duration_seconds,
            completed_stages=len(result.completed_stages),
            skipped_stages=len(result.skipped_stages),
            units_created=len(result.units_created),
        )
        return result

    def _run_stage(self, stage: Stage, network: Network, run_id: str) -> StageExecution:
        """Execute a single stage; errors are captured, never swallowed silently."""
        context = StageContext(
            stage.name,
            registry=self.registry,
            ledger=self.ledger,
            signer=self.signer,
            network=network,
            constants=self.constants,
            run_id=run_id,
        )
        started_at = datetime.now(UTC)
        error: DeployError | None = None

        with LogContext(stage=stage.name, run_id=run_id):
            logger.info("stage.start", stage=stage.name)
            try:
                stage.run(context)
            except Exception as e:
                error = as_deploy_error(e, f"Stage {stage.name!r} raised {type(e).__name__}: {e}")
                error.with_context(stage=stage.name, step=context.step, network=network.value, run_id=run_id)
                logger.error(
                    "stage.failed",
                    stage=stage.name,
                    step=context.step,
                    error_type=type(error).__name__,
                    error=error.message,
                    units_created=context.stats.units_created,
                )

        completed_at = datetime.now(UTC)
        if error is None:
            logger.info(
                "stage.complete",
                stage=stage.name,
                units_created=len(context.stats.units_created),
                units_reused=len(context.stats.units_reused),
                calls_made=context.stats.calls_made,
                calls_skipped=context.stats.calls_skipped,
                duration_seconds=(completed_at - started_at).total_seconds(),
            )

        return StageExecution(
            stage_name=stage.name,
            status=StageStatus.FAILED if error else StageStatus.COMPLETED,
            started_at=started_at,
            completed_at=completed_at,
            units_created=list(context.stats.units_created),
            units_reused=list(context.stats.units_reused),
            calls_made=context.stats.calls_made,
            calls_skipped=context.stats.calls_skipped,
            error=error,
        )


def run_all(
    stages: Sequence[Stage],
    network: Network | str,
    registry: UnitRegistry,
    ledger: LedgerClient,
    signer: Signer,
    *,
    constants: ConstantTable | None = None,
    tags: Iterable[str] | None = None,
) -> DeploymentResult:
    """Functional form of :meth:`Orchestrator.run_all`."""
    return Orchestrator(registry, ledger, signer, constants=constants).run_all(stages, network, tags=tags)


__all__ = [
    "DeploymentStatus",
    "StageStatus",
    "StageExecution",
    "DeploymentResult",
    "Orchestrator",
    "run_all",
]
