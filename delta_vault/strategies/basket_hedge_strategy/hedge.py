"""Target debt computation.

The vault must owe as much BTC/ETH as the basket it holds is exposed to:
its pro-rata share of the basket's underlying reserves, after the trader
open-interest override. Targets are then limited by the partial-move policy
and by the senior tranche's lending capacity.
"""

from __future__ import annotations

from loguru import logger

from delta_vault.core.errors import ConfigurationError
from delta_vault.core.utils.fixed_point import abs_diff, mul_div

from .types import OptimalBorrows, VaultState
from .valuation import (
    get_borrow_value,
    get_senior_borrowed,
    stable_to_token,
    token_price_in_stable,
    token_to_stable,
)


def apply_trader_override(reserve: int, override: int) -> int:
    # Positive override: traders already lean long, the vault shorts less
    adjusted = reserve - override if override > 0 else reserve + abs(override)
    if adjusted < 0:
        logger.warning(
            f"Trader override {override} exceeds reserve {reserve}; clamping to 0"
        )
        return 0
    return adjusted


async def get_token_reserves(
    state: VaultState, *, fresh: bool = True
) -> tuple[int, int]:
    if not fresh:
        return state.cached_btc_reserve, state.cached_eth_reserve
    basket = state.venues.basket_manager
    assets = state.config.assets
    btc = await basket.get_underlying_reserve(assets.btc.address)
    eth = await basket.get_underlying_reserve(assets.eth.address)
    return btc, eth


async def get_adjusted_reserves(
    state: VaultState, *, fresh: bool = True
) -> tuple[int, int]:
    btc, eth = await get_token_reserves(state, fresh=fresh)
    return (
        apply_trader_override(btc, state.btc_trader_override),
        apply_trader_override(eth, state.eth_trader_override),
    )


async def get_optimal_borrows(
    state: VaultState, basket_units: int, *, fresh: bool = True
) -> tuple[int, int]:
    supply = await state.venues.basket_manager.total_supply()
    if supply == 0 or basket_units == 0:
        return 0, 0
    btc_reserve, eth_reserve = await get_adjusted_reserves(state, fresh=fresh)
    return (
        mul_div(btc_reserve, basket_units, supply),
        mul_div(eth_reserve, basket_units, supply),
    )


def partial_borrow(
    optimal: int, current: int, threshold_value: int, token_price: int
) -> tuple[int, bool]:
    """Move at most ``threshold_value`` (stable units) worth of debt toward ``optimal``."""
    if threshold_value == 0 or token_price == 0:
        return optimal, False
    threshold_units = stable_to_token(threshold_value, token_price)
    if abs_diff(optimal, current) <= threshold_units:
        return optimal, False
    if optimal > current:
        return current + threshold_units, True
    return current - threshold_units, True


async def get_optimal_partial_borrow(
    state: VaultState, asset: str, optimal: int, current: int
) -> tuple[int, bool]:
    px = await token_price_in_stable(state, asset, maximize=True)
    return partial_borrow(optimal, current, state.config.partial_threshold(asset), px)


def max_borrow_value(
    available_senior_borrow: int, liquidation_threshold_bps: int, target_hf_bps: int
) -> int:
    if target_hf_bps <= liquidation_threshold_bps:
        raise ConfigurationError(
            f"target health factor {target_hf_bps} must exceed liquidation threshold "
            f"{liquidation_threshold_bps}"
        )
    return mul_div(
        available_senior_borrow,
        liquidation_threshold_bps,
        target_hf_bps - liquidation_threshold_bps,
    )


def target_senior_borrow(
    borrow_value: int, liquidation_threshold_bps: int, target_hf_bps: int
) -> int:
    if target_hf_bps <= liquidation_threshold_bps:
        raise ConfigurationError(
            f"target health factor {target_hf_bps} must exceed liquidation threshold "
            f"{liquidation_threshold_bps}"
        )
    return mul_div(
        target_hf_bps - liquidation_threshold_bps,
        borrow_value,
        liquidation_threshold_bps,
    )


def split_borrow_value(
    max_value: int, btc_weight: int, eth_weight: int
) -> tuple[int, int]:
    """Split ``max_value`` by USD weight; the two parts sum to ``max_value``."""
    total = btc_weight + eth_weight
    if total == 0:
        return 0, 0
    btc_value = mul_div(max_value, btc_weight, total)
    return btc_value, max_value - btc_value


async def get_optimal_capped_borrow(
    state: VaultState,
    available_senior_borrow: int,
    liquidation_threshold_bps: int,
) -> tuple[int, int]:
    assets = state.config.assets
    max_value = max_borrow_value(
        available_senior_borrow,
        liquidation_threshold_bps,
        state.config.target_health_factor_bps,
    )
    btc_reserve, eth_reserve = await get_adjusted_reserves(state)
    btc_px = await token_price_in_stable(state, assets.btc.address, maximize=True)
    eth_px = await token_price_in_stable(state, assets.eth.address, maximize=True)

    btc_value, eth_value = split_borrow_value(
        max_value,
        token_to_stable(btc_reserve, btc_px),
        token_to_stable(eth_reserve, eth_px),
    )
    return stable_to_token(btc_value, btc_px), stable_to_token(eth_value, eth_px)


async def get_optimal_borrows_final(
    state: VaultState,
    current_btc: int,
    current_eth: int,
    basket_units: int,
    *,
    partial_allowed: bool,
) -> OptimalBorrows:
    """Resolve debt targets and the senior-tranche borrow they need. Read-only."""
    cfg = state.config
    assets = cfg.assets
    liq = await state.venues.lending_market.get_reserve_liquidation_threshold(
        assets.stable.address
    )

    btc, eth = await get_optimal_borrows(state, basket_units)
    partial_btc = partial_eth = False
    if partial_allowed:
        btc, partial_btc = await get_optimal_partial_borrow(
            state, assets.btc.address, btc, current_btc
        )
        eth, partial_eth = await get_optimal_partial_borrow(
            state, assets.eth.address, eth, current_eth
        )
    uncapped_eth = eth

    borrow_value = await get_borrow_value(state, btc, eth, maximize=True)
    target_senior = target_senior_borrow(
        borrow_value, liq, cfg.target_health_factor_bps
    )

    is_capped = False
    current_senior = await get_senior_borrowed(state)
    if target_senior > current_senior:
        available = await state.venues.senior_tranche.available_borrow(state.address)
        if target_senior - current_senior > available:
            logger.warning(
                f"Senior capacity short: need {target_senior - current_senior}, "
                f"available {available}; capping hedge"
            )
            target_senior = current_senior + available
            btc, eth = await get_optimal_capped_borrow(state, target_senior, liq)
            is_capped = True
            if partial_allowed:
                btc, partial_btc = await get_optimal_partial_borrow(
                    state, assets.btc.address, btc, current_btc
                )
                eth, partial_eth = await get_optimal_partial_borrow(
                    state, assets.eth.address, eth, current_eth
                )

    logger.debug(
        f"Optimal borrows btc={btc} eth={eth} senior={target_senior} "
        f"uncapped_eth={uncapped_eth} partial=({partial_btc},{partial_eth}) capped={is_capped}"
    )
    return OptimalBorrows(
        btc=btc,
        eth=eth,
        target_senior_borrow=target_senior,
        uncapped_eth=uncapped_eth,
        is_partial_btc=partial_btc,
        is_partial_eth=partial_eth,
        is_capped=is_capped,
    )
