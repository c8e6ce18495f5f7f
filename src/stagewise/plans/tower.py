"""Tower protocol deployment plan for local networks.

Nine stages create and wire the stablecoin system (treasury, pools,
oracles, zap, farms, vaults).  External addresses and numeric inputs come
from the constant table on the context; ``LOCALHOST_CONSTANTS`` carries the
values used on ``hardhat``/``localhost`` forks of the mainnet chain.

Stage order::

    main → spot-price → oracles → zap → farm-0 → farm-1 → vaults
         → farm-0-start → farm-1-start

Initializers, toggles and appends (``initialize``, ``toggleMinting``,
``addPool``, ``add``...) revert or flip state when repeated, so they run
with ``once=True``.
"""

from __future__ import annotations

from typing import Any

from stagewise.core.constants import ConstantTable
from stagewise.core.network import local_only
from stagewise.orchestration.context import StageContext
from stagewise.orchestration.stage import Stage, stage
from stagewise.resolver import allocation_points, duration, emission_schedule, ppm

LOCALHOST_CONSTANTS: dict[str, Any] = {
    # External units
    "usdc": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
    "wmatic": "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270",
    "operator": "0x974AC76c7870d941AafB03a716e1fec498808291",
    "lp_dollar_usdc": "0xd70f14f13ef3590e537bbd225754248965a3593c",
    "lp_share_usdc": "0x10995233Ef7b3abd1a2706a86FFeA456ebae8796",
    "price_feed_usdc_usd": "0xfE4A8cc5b5B2366C1B58Bea3858e81843581b2F7",
    "router_firebird": "0xF6fa9Ea1f64f1BBfA8d71f7f43fAF6D45520bfac",
    "router_quickswap": "0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff",
    "aave_lending_pool": "0x8dff5e27ea6b7ac08ebfdf9eb090f32ee9a30fcf",
    "aave_incentives_controller": "0x357D51124f59836DeD84c8a1730D72B749d8BC23",
    # Tokens
    "dollar_name": "Tower Stablecoin",
    "dollar_symbol": "TOWER",
    "share_name": "Ivory Token",
    "share_symbol": "IVORY",
    "vesting_start": 1633694400,  # 2021-10-08 12:00 UTC
    # Treasury policy, in percent
    "timelock_delay_hours": 12,
    "mint_fee_percent": "0.3",
    "redeem_fee_percent": "0.4",
    "excess_collateral_safety_margin_percent": "15",
    "idle_collateral_utilization_percent": "80",
    "reserved_collateral_threshold_percent": "15",
    # Oracles
    "oracle_period_minutes": 10,
    "price_oracle_decimals": 12,
    # Farms
    "block_interval_seconds": 2,
    "farm_start_block": 0,
    "farm_0_emission_per_day": "383562",
    "farm_1_emission_per_day": "383562",
    "farm_0_single_weight": 25,
    "farm_0_lp_weight": 75,
    "farm_1_lp_weight": 100,
}


def default_constants() -> ConstantTable:
    return ConstantTable(LOCALHOST_CONSTANTS, source="stagewise.plans.tower")


# =============================================================================
# Stages
# =============================================================================


@stage("main", applies_to=local_only, tags={"mock", "main"})
def deploy_main(ctx: StageContext) -> None:
    """Core units: timelock, treasury, policies, tokens and the USDC pool."""
    c = ctx.constants
    creator = ctx.signer.address
    usdc = c.address("usdc")
    operator = c.address("operator")

    ctx.create("Timelock", args=[creator, duration(hours=c.integer("timelock_delay_hours"))])
    ctx.create("Multicall")
    treasury = ctx.create("Treasury")

    policy = ctx.create("TreasuryPolicy")
    ctx.call(
        "TreasuryPolicy",
        "initialize",
        treasury,
        ppm(c.get("mint_fee_percent")),
        ppm(c.get("redeem_fee_percent")),
        ppm(c.get("excess_collateral_safety_margin_percent")),
        ppm(c.get("idle_collateral_utilization_percent")),
        ppm(c.get("reserved_collateral_threshold_percent")),
        once=True,
    )

    ratio_policy = ctx.create("CollateralRatioPolicy")
    ctx.call("CollateralRatioPolicy", "toggleCollateralRatio", once=True)

    reserve = ctx.create("CollateralReserve")
    ctx.call("CollateralReserve", "initialize", treasury, once=True)

    treasury_fund = ctx.create("TreasuryFund")
    ctx.call("TreasuryFund", "setOperator", operator)

    dollar = ctx.create("Dollar")
    ctx.call("Dollar", "initialize", c.string("dollar_name"), c.string("dollar_symbol"), treasury, once=True)

    share = ctx.create("Share")
    ctx.call(
        "Share",
        "initialize",
        c.string("share_name"),
        c.string("share_symbol"),
        treasury,
        treasury_fund,
        creator,  # community reward controller
        c.integer("vesting_start"),
        once=True,
    )

    pool = ctx.create("PoolUSDC", kind="Pool")
    ctx.call("PoolUSDC", "initialize", dollar, share, usdc, treasury, once=True)
    # minting and redeeming start paused
    ctx.call("PoolUSDC", "toggleMinting", once=True)
    ctx.call("PoolUSDC", "toggleRedeeming", once=True)

    consolidated_fund = ctx.create("ConsolidatedFund")

    ctx.call("TreasuryFund", "initialize", share, once=True)
    ctx.call("TreasuryFund", "setOperator", operator)
    ctx.call("CollateralRatioPolicy", "initialize", treasury, dollar, once=True)

    ctx.call(
        "Treasury",
        "initialize",
        dollar,
        share,
        usdc,
        policy,
        ratio_policy,
        reserve,
        consolidated_fund,  # profit sharing fund
        operator,  # controller
        once=True,
    )
    ctx.call("Treasury", "addPool", pool, once=True)


@stage("spot-price", applies_to=local_only, tags={"mock", "spot-price"})
def deploy_spot_price(ctx: StageContext) -> None:
    """Spot price reader."""
    ctx.create("SpotPriceGetter")


@stage("oracles", applies_to=local_only, tags={"mock", "oracles"})
def deploy_oracles(ctx: StageContext) -> None:
    """Pair TWAP oracles, the collateral feed and dollar/share price oracles."""
    c = ctx.constants
    operator = c.address("operator")
    dollar = ctx.unit("Dollar")
    share = ctx.unit("Share")
    decimals = c.integer("price_oracle_decimals")

    dollar_pair = ctx.create("PairOracle_DOLLAR_USDC", kind="PairOracle", args=[c.address("lp_dollar_usdc")])
    ctx.call("PairOracle_DOLLAR_USDC", "setOperator", operator)

    share_pair = ctx.create("PairOracle_SHARE_USDC", kind="PairOracle", args=[c.address("lp_share_usdc")])
    ctx.call("PairOracle_SHARE_USDC", "setPeriod", duration(minutes=c.integer("oracle_period_minutes")))
    ctx.call("PairOracle_SHARE_USDC", "setOperator", operator)

    collateral = ctx.create("CollateralOracle", args=[c.address("price_feed_usdc_usd")])
    dollar_oracle = ctx.create("DollarOracle", kind="PriceOracle", args=[dollar, dollar_pair, collateral, decimals])
    share_oracle = ctx.create("ShareOracle", kind="PriceOracle", args=[share, share_pair, collateral, decimals])

    ctx.call("CollateralRatioPolicy", "setOracleDollar", dollar_oracle)
    ctx.call("PoolUSDC", "setOracle", collateral)
    ctx.call("Treasury", "setOracleDollar", dollar_oracle)
    ctx.call("Treasury", "setOracleShare", share_oracle)
    ctx.call("Treasury", "setOracleCollateral", collateral)


@stage("zap", applies_to=local_only, tags={"mock", "zap"})
def deploy_zap(ctx: StageContext) -> None:
    """Single-sided zap pool, minting paused."""
    c = ctx.constants
    usdc = c.address("usdc")
    share = ctx.unit("Share")

    ctx.create("ZapPool")
    ctx.call(
        "ZapPool",
        "initialize",
        ctx.unit("Treasury"),
        ctx.unit("Dollar"),
        share,
        usdc,
        ctx.unit("CollateralOracle"),
        once=True,
    )
    ctx.call("ZapPool", "toggleMinting", once=True)
    ctx.call("ZapPool", "setRouter", c.address("router_firebird"), [usdc, share])


def _deploy_farm(ctx: StageContext, index: int) -> None:
    c = ctx.constants
    schedule = emission_schedule(
        c.get(f"farm_{index}_emission_per_day"),
        block_interval_seconds=c.integer("block_interval_seconds"),
        start_block=c.integer("farm_start_block"),
    )
    share = ctx.unit("Share")
    farm = ctx.create(
        f"MasterChef_IVORY_{index}",
        kind="MasterChef",
        args=[share, ctx.unit("ConsolidatedFund"), schedule.reward_per_block, schedule.start_block],
    )
    ctx.call("ConsolidatedFund", "addPool", farm, share, once=True)


@stage("farm-0", applies_to=local_only, tags={"mock", "farm-0"})
def deploy_farm_0(ctx: StageContext) -> None:
    """IVORY farm for the single-asset and IVORY/USDC pools."""
    _deploy_farm(ctx, 0)


@stage("farm-1", applies_to=local_only, tags={"mock", "farm-1"})
def deploy_farm_1(ctx: StageContext) -> None:
    """IVORY farm for the TOWER/USDC pool."""
    _deploy_farm(ctx, 1)


@stage("vaults", applies_to=local_only, tags={"mock", "vaults"})
def deploy_vaults(ctx: StageContext) -> None:
    """Aave treasury vault handed over to a vault controller."""
    c = ctx.constants
    usdc = c.address("usdc")
    share = ctx.unit("Share")

    vault = ctx.create("TreasuryVaultAave")
    ctx.call(
        "TreasuryVaultAave",
        "initialize",
        usdc,
        ctx.unit("Treasury"),
        c.address("aave_lending_pool"),
        c.address("aave_incentives_controller"),
        once=True,
    )

    controller = ctx.create("VaultController")
    ctx.call(
        "VaultController",
        "initialize",
        vault,
        c.address("operator"),  # admin
        ctx.unit("CollateralReserve"),
        share,
        once=True,
    )
    ctx.call("VaultController", "setSwapOptions", c.address("router_quickswap"), [c.address("wmatic"), usdc])
    ctx.call("VaultController", "setSwapOptions", c.address("router_firebird"), [usdc, share])

    ctx.call("TreasuryVaultAave", "transferOwnership", controller, once=True)


@stage("farm-0-start", applies_to=local_only, tags={"mock", "farm-0-start"})
def start_farm_0(ctx: StageContext) -> None:
    """Open farm 0: single IVORY 25%, IVORY/USDC 75%."""
    c = ctx.constants
    points = allocation_points(
        {"single": c.integer("farm_0_single_weight"), "lp": c.integer("farm_0_lp_weight")}
    )
    ctx.call("MasterChef_IVORY_0", "setStartBlockOnce", c.integer("farm_start_block"), once=True)
    ctx.call("MasterChef_IVORY_0", "add", points["single"], ctx.unit("Share"), once=True)
    ctx.call("MasterChef_IVORY_0", "add", points["lp"], c.address("lp_share_usdc"), once=True)
    ctx.call("MasterChef_IVORY_0", "massUpdatePools")


@stage("farm-1-start", applies_to=local_only, tags={"mock", "farm-1-start"})
def start_farm_1(ctx: StageContext) -> None:
    """Open farm 1: TOWER/USDC 100%."""
    c = ctx.constants
    points = allocation_points({"lp": c.integer("farm_1_lp_weight")})
    ctx.call("MasterChef_IVORY_1", "setStartBlockOnce", c.integer("farm_start_block"), once=True)
    ctx.call("MasterChef_IVORY_1", "add", points["lp"], c.address("lp_dollar_usdc"), once=True)
    ctx.call("MasterChef_IVORY_1", "massUpdatePools")


STAGES: tuple[Stage, ...] = (
    deploy_main,
    deploy_spot_price,
    deploy_oracles,
    deploy_zap,
    deploy_farm_0,
    deploy_farm_1,
    deploy_vaults,
    start_farm_0,
    start_farm_1,
)


def build_stages() -> list[Stage]:
    """The plan's stage sequence, in execution order."""
    return list(STAGES)


__all__ = ["LOCALHOST_CONSTANTS", "STAGES", "build_stages", "default_constants"]
