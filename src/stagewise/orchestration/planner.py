"""Run Plan — preview which stages a run would execute, without side effects.

Before pointing a stage sequence at a live network, operators want to see
what it will do: which stages apply to the target, which are filtered out
by ``--tags``, and (given a registry) which units already exist and will be
reused rather than created.

ARCHITECTURE
────────────
::

    plan_run(stages, network, tags=None, registry=None)
    │
    ├── validate stage names
    ├── network filter → skip "network"
    ├── tag filter     → skip "tags"
    │
    ▼
    PlanResult
    ├── entries: list[PlanEntry]
    ├── will_run / will_skip
    └── summary() → str

Planning never calls the ledger and never invokes stage procedures, so it
cannot know which units a stage will create; it reports the registry state
(``existing_units``) so the operator can compare.

Example::

    from stagewise.orchestration.planner import plan_run

    plan = plan_run(stages, "mumbai")
    print(plan.summary())
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from stagewise.core.network import Network
from stagewise.orchestration.stage import Stage, validate_stage_names
from stagewise.registry.registry import UnitRegistry


@dataclass(frozen=True)
class PlanEntry:
    """Preview of one stage.

    Attributes:
        stage_name: Name of the stage.
        order: Position in the sequence (1-based).
        will_execute: Whether the stage would run.
        skip_reason: ``"network"`` or ``"tags"`` when skipped.
        applies_to: Label of the stage's network filter.
        tags: Stage tags, sorted.
        description: Stage description.
    """

    stage_name: str
    order: int
    will_execute: bool
    skip_reason: str | None = None
    applies_to: str = "any"
    tags: tuple[str, ...] = ()
    description: str = ""


@dataclass
class PlanResult:
    """Result of :func:`plan_run`."""

    network: Network
    tags: tuple[str, ...] = ()
    entries: list[PlanEntry] = field(default_factory=list)
    existing_units: list[str] = field(default_factory=list)

    @property
    def will_run(self) -> list[str]:
        return [e.stage_name for e in self.entries if e.will_execute]

    @property
    def will_skip(self) -> list[str]:
        return [e.stage_name for e in self.entries if not e.will_execute]

    def summary(self) -> str:
        """Human-readable summary of the plan."""
        lines: list[str] = []
        lines.append(f"=== Plan: {self.network.value} ===")
        if self.tags:
            lines.append(f"Tags: {', '.join(self.tags)}")
        lines.append(f"Stages: {len(self.will_run)} of {len(self.entries)}")
        lines.append(f"Existing units: {len(self.existing_units)}")
        lines.append("")

        for entry in self.entries:
            marker = ">" if entry.will_execute else "x"
            reason = f" (skipped: {entry.skip_reason})" if entry.skip_reason else ""
            lines.append(f"  {marker} {entry.order}. {entry.stage_name} [{entry.applies_to}]{reason}")
            if entry.description:
                lines.append(f"      {entry.description}")

        return "\n".join(lines)


def plan_run(
    stages: Sequence[Stage],
    network: Network | str,
    *,
    tags: Iterable[str] | None = None,
    registry: UnitRegistry | None = None,
) -> PlanResult:
    """Preview a run of ``stages`` on ``network``, using the same gating as the orchestrator."""
    validate_stage_names(stages)
    network = Network.parse(network)
    tag_filter = tuple(sorted(set(tags or ())))

    result = PlanResult(network=network, tags=tag_filter)
    if registry is not None:
        result.existing_units = registry.names()

    for order, stage in enumerate(stages, start=1):
        reason = None
        if not stage.applies(network):
            reason = "network"
        elif not stage.matches_tags(tag_filter):
            reason = "tags"

        result.entries.append(
            PlanEntry(
                stage_name=stage.name,
                order=order,
                will_execute=reason is None,
                skip_reason=reason,
                applies_to=stage.applies_to.label,
                tags=tuple(sorted(stage.tags)),
                description=stage.description,
            )
        )

    return result


__all__ = ["PlanEntry", "PlanResult", "plan_run"]
