"""Stage — one ordered, named batch of create/configure steps.

A Stage is the blueprint: it declares **what** to create and wire and on
which networks, but never **how** requests reach the ledger (that's the
``StageContext`` the orchestrator hands to its procedure).

ARCHITECTURE
────────────
::

    Stage
      ├── name          ── unique within a stage sequence
      ├── procedure     ── fn(ctx: StageContext) -> None
      ├── applies_to    ── NetworkFilter (local_only, live_only, only(...))
      ├── tags          ── frozenset for ``--tags`` selection
      └── description

    @stage("oracles", tags={"mock", "oracles"})
    def deploy_oracles(ctx):
        ...

Stages are frozen dataclasses; the orchestrator only reads them.  Order is
the position in the sequence passed to ``run_all``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stagewise.core.network import Network, NetworkFilter, any_network

if TYPE_CHECKING:
    from stagewise.orchestration.context import StageContext

Procedure = Callable[["StageContext"], None]


@dataclass(frozen=True)
class Stage:
    """
    A named unit of deployment work.

    Attributes:
        name: Unique stage name (e.g. "oracles")
        procedure: Function receiving a StageContext; raises on failure
        applies_to: Network predicate; the stage is skipped where it is False
        tags: Tags used by tag-filtered runs
        description: Human-readable description
    """

    name: str
    procedure: Procedure
    applies_to: NetworkFilter = any_network
    tags: frozenset[str] = field(default_factory=frozenset)
    description: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("Stage name must be non-empty")
        if not callable(self.procedure):
            raise TypeError(f"Stage {self.name!r} procedure is not callable")
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags))

    def applies(self, network: Network | str) -> bool:
        """Pure predicate: does this stage run on ``network``?"""
        return self.applies_to(Network.parse(network))

    def matches_tags(self, tags: Iterable[str] | None) -> bool:
        """True when no tag filter is given or any requested tag is on the stage."""
        if not tags:
            return True
        return not self.tags.isdisjoint(tags)

    def run(self, context: StageContext) -> None:
        """Execute the procedure against ``context``."""
        self.procedure(context)

    def __repr__(self) -> str:
        return f"Stage({self.name!r}, applies_to={self.applies_to.label}, tags={sorted(self.tags)})"


def stage(
    name: str,
    *,
    applies_to: NetworkFilter = any_network,
    tags: Iterable[str] = (),
    description: str = "",
) -> Callable[[Procedure], Stage]:
    """Decorator turning a procedure into a ``Stage``.

    The description defaults to the first line of the function docstring.
    """

    def decorator(fn: Procedure) -> Stage:
        doc = (fn.__doc__ or "").strip().splitlines()
        return Stage(
            name=name,
            procedure=fn,
            applies_to=applies_to,
            tags=frozenset(tags),
            description=description or (doc[0] if doc else ""),
        )

    return decorator


def validate_stage_names(stages: Sequence[Stage]) -> None:
    """Reject duplicate stage names (order is identity; names are for humans and logs)."""
    seen: set[str] = set()
    for s in stages:
        if not isinstance(s, Stage):
            raise TypeError(f"Expected Stage, got {type(s).__name__}")
        if s.name in seen:
            raise ValueError(f"Duplicate stage name: {s.name}")
        seen.add(s.name)


__all__ = ["Stage", "Procedure", "stage", "validate_stage_names"]
