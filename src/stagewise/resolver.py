"""Parameter Resolver — derived numeric arguments from human-meaningful constants.

Stages describe fees as percentages, emissions per day and windows in hours;
units want parts-per-million, per-block rates scaled to 18 decimals and
seconds.  The functions here do that translation.  They are pure, keep all
arithmetic in integers or ``Decimal`` (never float), and raise
``ResolverError`` on invalid input.

Example::

    from stagewise.resolver import emission_schedule, ppm, duration

    schedule = emission_schedule("383562", block_interval_seconds=2)
    schedule.reward_per_block   # 383562 * 10**18 // 43200
    ppm("0.3")                  # 3000
    duration(hours=12)          # 43200
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from stagewise.core.errors import ResolverError

SECONDS_PER_DAY = 24 * 60 * 60
PPM_PER_PERCENT = 10_000
DEFAULT_DECIMALS = 18
DEFAULT_ALLOCATION_TOTAL = 100_000


def _to_decimal(value: int | str | Decimal, what: str) -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        # floats lose precision before we ever see them
        raise ResolverError(f"{what} must be an int, str or Decimal, got {type(value).__name__}")
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ResolverError(f"{what} is not a number: {value!r}", cause=e) from e
    if not result.is_finite():
        raise ResolverError(f"{what} must be finite: {value!r}")
    return result


def _exact_int(value: Decimal, what: str) -> int:
    if value != value.to_integral_value():
        raise ResolverError(f"{what} does not resolve to a whole number: {value}")
    return int(value)


def parse_units(value: int | str | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """Scale a decimal amount to integer base units (``"1.5"``, 18 → 1.5e18)."""
    if decimals < 0:
        raise ResolverError(f"decimals must be non-negative, got {decimals}")
    amount = _to_decimal(value, "amount")
    if amount < 0:
        raise ResolverError(f"amount must be non-negative, got {amount}")
    return _exact_int(amount.scaleb(decimals), f"amount {value} at {decimals} decimals")


def blocks_per_day(block_interval_seconds: int) -> int:
    """Estimated number of blocks per day for a fixed block interval.

    Intervals that do not divide a day evenly are truncated toward zero.
    """
    if isinstance(block_interval_seconds, bool) or not isinstance(block_interval_seconds, int):
        raise ResolverError(f"block interval must be an int, got {block_interval_seconds!r}")
    if block_interval_seconds <= 0:
        raise ResolverError(f"block interval must be positive, got {block_interval_seconds}")
    if block_interval_seconds > SECONDS_PER_DAY:
        raise ResolverError(f"block interval longer than a day: {block_interval_seconds}")
    return SECONDS_PER_DAY // block_interval_seconds


def per_block_rate(daily_total: int, blocks: int) -> int:
    """Split a daily total evenly across ``blocks``, truncating toward zero."""
    if blocks <= 0:
        raise ResolverError(f"blocks per day must be positive, got {blocks}")
    if daily_total < 0:
        raise ResolverError(f"daily total must be non-negative, got {daily_total}")
    return daily_total // blocks


@dataclass(frozen=True)
class EmissionSchedule:
    """Reward emission resolved for a block-based distributor."""

    daily_emission: int  # base units per day
    blocks_per_day: int
    reward_per_block: int  # base units per block
    start_block: int = 0


def emission_schedule(
    daily_emission: int | str | Decimal,
    *,
    block_interval_seconds: int = 2,
    decimals: int = DEFAULT_DECIMALS,
    start_block: int = 0,
) -> EmissionSchedule:
    """Resolve a per-day emission into a per-block reward."""
    if start_block < 0:
        raise ResolverError(f"start block must be non-negative, got {start_block}")
    daily = parse_units(daily_emission, decimals)
    blocks = blocks_per_day(block_interval_seconds)
    return EmissionSchedule(
        daily_emission=daily,
        blocks_per_day=blocks,
        reward_per_block=per_block_rate(daily, blocks),
        start_block=start_block,
    )


def ppm(percent: int | str | Decimal) -> int:
    """Percent → parts-per-million (``"0.3"`` → 3000, ``15`` → 150000)."""
    value = _to_decimal(percent, "percent")
    if value < 0 or value > 100:
        raise ResolverError(f"percent must be within [0, 100], got {value}")
    return _exact_int(value * PPM_PER_PERCENT, f"{value}% in ppm")


def allocation_points(
    weights: Mapping[str, int | str | Decimal],
    total: int = DEFAULT_ALLOCATION_TOTAL,
) -> dict[str, int]:
    """Percent weights → integer allocation points out of ``total``.

    ``{"single": 25, "lp": 75}`` → ``{"single": 25000, "lp": 75000}``.
    """
    if total <= 0:
        raise ResolverError(f"allocation total must be positive, got {total}")
    resolved: dict[str, int] = {}
    running = Decimal(0)
    for name, weight in weights.items():
        value = _to_decimal(weight, f"weight {name!r}")
        if value < 0:
            raise ResolverError(f"weight {name!r} must be non-negative, got {value}")
        running += value
        resolved[name] = _exact_int(value * total / 100, f"allocation for {name!r}")
    if running > 100:
        raise ResolverError(f"allocation weights sum to {running}%, more than 100%")
    return resolved


def duration(*, days: int = 0, hours: int = 0, minutes: int = 0, seconds: int = 0) -> int:
    """Time window in seconds."""
    total = ((days * 24 + hours) * 60 + minutes) * 60 + seconds
    if total < 0:
        raise ResolverError(f"duration must be non-negative, got {total}s")
    return total


def unix_timestamp(value: datetime) -> int:
    """Timezone-aware datetime → integer unix seconds."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ResolverError(f"timestamp must be timezone-aware: {value.isoformat()}")
    return int(value.timestamp())


__all__ = [
    "SECONDS_PER_DAY",
    "EmissionSchedule",
    "parse_units",
    "blocks_per_day",
    "per_block_rate",
    "emission_schedule",
    "ppm",
    "allocation_points",
    "duration",
    "unix_timestamp",
]
