#!/usr/bin/env python3
"""Resume after failure — re-running a plan converges instead of duplicating.

WHAT HAPPENS
────────────
1. The tower plan runs against a ledger that rejects the ``ZapPool`` create.
   Stages ``main``, ``spot-price`` and ``oracles`` complete; ``zap`` fails.
2. The same plan runs again with the failure cleared.  Every unit created by
   the first run is reused (no create request), ``once`` calls are skipped,
   and only the remaining work is submitted.

Run: python examples/resume_after_failure.py
"""

from stagewise.core.logging import configure_logging
from stagewise.orchestration.testing import FakeLedgerClient, make_orchestrator
from stagewise.plans.tower import build_stages, default_constants
from stagewise.registry import UnitRegistry


def main() -> None:
    configure_logging(level="WARNING", json_format=False)

    registry = UnitRegistry()
    ledger = FakeLedgerClient(fail_kinds={"ZapPool"})
    orchestrator = make_orchestrator(registry=registry, ledger=ledger, constants=default_constants())

    first = orchestrator.run_all(build_stages(), "localhost")
    print(f"first run:  {first.status.value} at {first.error_stage} step {first.error_step}")
    print(f"            {len(registry)} units recorded, {len(ledger.creates)} creates")

    ledger.heal()
    creates_before = len(ledger.creates)
    second = orchestrator.run_all(build_stages(), "localhost")
    print(f"second run: {second.status.value}")
    print(f"            {len(registry)} units recorded, {len(ledger.creates) - creates_before} new creates")

    for execution in second.stage_executions:
        print(
            f"  {execution.stage_name:<14} created={len(execution.units_created):<2} "
            f"reused={len(execution.units_reused):<2} skipped calls={execution.calls_skipped}"
        )


if __name__ == "__main__":
    main()
