"""Keeps stable collateral in step with the value of volatile debt."""

from __future__ import annotations

from loguru import logger

from delta_vault.core.constants.base import BPS_TO_WAD
from delta_vault.core.utils.fixed_point import Rounding, abs_diff, mul_div, sub_bps

from .types import OptimalBorrows, VaultState
from .valuation import (
    basket_to_stable,
    get_borrow_value,
    get_collateral_balance,
    get_current_borrows,
    get_senior_borrowed,
    stable_to_basket,
)


async def is_health_factor_below_threshold(state: VaultState) -> bool:
    hf = await state.venues.lending_market.get_health_factor(state.address)
    return hf < state.config.rebalance_health_factor_threshold_bps * BPS_TO_WAD


async def convert_basket_to_collateral(state: VaultState, value: int) -> int:
    """Redeem ``value`` worth of basket for stable and supply it. Returns stable supplied."""
    venues = state.venues
    stable = state.config.assets.stable.address
    basket_amount = await stable_to_basket(
        state, value, maximize=False, rounding=Rounding.UP
    )
    min_out = sub_bps(value, state.config.slippage_threshold_basket_bps)
    held = await venues.basket_manager.balance_of(state.address)
    if basket_amount >= held:
        # Whole balance redeemed; bound by what it is worth
        basket_amount = held
        worth = await basket_to_stable(state, held, maximize=False)
        min_out = min(min_out, sub_bps(worth, state.config.slippage_threshold_basket_bps))
    if basket_amount == 0:
        return 0
    out = await venues.basket_manager.redeem_basket_token(stable, basket_amount, min_out)
    await venues.lending_market.supply(stable, out)
    return out


async def convert_collateral_to_basket(state: VaultState, value: int) -> int:
    """Withdraw ``value`` of stable collateral and mint basket. Returns stable spent."""
    venues = state.venues
    stable = state.config.assets.stable.address
    withdrawn = await venues.lending_market.withdraw(stable, value, state.address)
    if withdrawn == 0:
        return 0
    expected = await stable_to_basket(state, withdrawn, maximize=True)
    min_out = sub_bps(expected, state.config.slippage_threshold_basket_bps)
    await venues.basket_manager.mint_basket_token(stable, withdrawn, min_out)
    return withdrawn


async def rebalance_profit(state: VaultState, borrow_value: int | None = None) -> None:
    if borrow_value is None:
        btc, eth = await get_current_borrows(state)
        borrow_value = await get_borrow_value(state, btc, eth)

    deposited = state.stable_deposited
    diff = abs_diff(borrow_value, deposited)
    if diff == 0:
        return

    hf_low = await is_health_factor_below_threshold(state)
    if diff < state.config.profit_threshold and not hf_low:
        logger.debug(f"Profit drift {diff} below threshold; skipping")
        return
    if hf_low:
        logger.warning(f"Health factor below threshold; reconciling drift {diff}")

    if borrow_value > deposited:
        out = await convert_basket_to_collateral(state, diff)
        state.credit_stable(out)
        logger.debug(f"Moved {out} from basket to collateral")
    else:
        spent = await convert_collateral_to_basket(state, diff)
        state.debit_stable(spent)
        logger.debug(f"Moved {spent} from collateral to basket")


async def rebalance_unhedged_basket(
    state: VaultState, optimal: OptimalBorrows, basket_units: int
) -> None:
    """Hold the un-hedgeable ETH fraction of the basket as stable collateral."""
    target = 0
    if optimal.uncapped_eth > optimal.eth:
        target_basket = mul_div(
            basket_units, optimal.uncapped_eth - optimal.eth, optimal.uncapped_eth
        )
        target = await basket_to_stable(state, target_basket, maximize=False)

    current = state.unhedged_basket_value
    if target == current:
        return
    if target != 0 and abs_diff(target, current) < state.config.min_hedge_threshold:
        logger.debug(f"Unhedged buffer drift {abs_diff(target, current)} below threshold")
        return

    if target > current:
        out = await convert_basket_to_collateral(state, target - current)
        state.unhedged_basket_value = current + out
    else:
        release = current - target
        # Only collateral not owed to the senior tranche backs the buffer
        owned = await get_collateral_balance(state) - await get_senior_borrowed(state)
        spent = 0
        if min(release, owned) > 0:
            spent = await convert_collateral_to_basket(state, min(release, owned))
        if spent < release:
            # Debt unwinding already consumed the rest; keep collateral accounted
            logger.warning(f"Unhedged buffer short by {release - spent} on release")
            state.credit_stable(release - spent)
        state.unhedged_basket_value = target
    logger.info(f"Unhedged buffer {current} -> {state.unhedged_basket_value}")


async def check_collateral_invariant(state: VaultState) -> int:
    """``collateral - (stable deposited + unhedged + senior borrowed)``."""
    collateral = await get_collateral_balance(state)
    senior = await state.venues.senior_tranche.borrowed(state.address)
    return collateral - (state.stable_deposited + state.unhedged_basket_value + senior)
