"""Sequencing of harvest, reconcile and hedge for keeper and user triggers."""

from __future__ import annotations

from eth_utils import is_address, is_same_address
from loguru import logger

from delta_vault.core.errors import AuthorizationError, RebalanceNotEligibleError
from delta_vault.core.utils.fixed_point import is_within_bps

from .harvest import harvest_fees
from .hedge import get_optimal_borrows_final, get_token_reserves
from .position import rebalance_borrow
from .reconcile import (
    is_health_factor_below_threshold,
    rebalance_profit,
    rebalance_unhedged_basket,
)
from .types import OptimalBorrows, RebalanceGate, RebalancePhase, VaultState
from .valuation import get_current_borrows, get_gross_basket_units, get_senior_borrowed


async def check_rebalance_gate(state: VaultState, now: int) -> RebalanceGate:
    cfg = state.config
    venues = state.venues
    bps = cfg.rebalance_delta_threshold_bps

    btc_reserve, eth_reserve = await get_token_reserves(state)
    reserve_deviation = not (
        is_within_bps(btc_reserve, state.cached_btc_reserve, bps)
        and is_within_bps(eth_reserve, state.cached_eth_reserve, bps)
    )

    current_btc, current_eth = await get_current_borrows(state)
    target = await get_optimal_borrows_final(
        state,
        current_btc,
        current_eth,
        await get_gross_basket_units(state),
        partial_allowed=False,
    )
    borrow_deviation = not (
        is_within_bps(current_btc, target.btc, bps)
        and is_within_bps(current_eth, target.eth, bps)
    )

    override_changed = (
        await venues.trader_oracle.get_btc_override() != state.btc_trader_override
        or await venues.trader_oracle.get_eth_override() != state.eth_trader_override
    )

    return RebalanceGate(
        health_factor_low=await is_health_factor_below_threshold(state),
        time_elapsed=now - state.last_rebalance_timestamp
        > cfg.rebalance_time_threshold_seconds,
        reserve_deviation=reserve_deviation,
        borrow_deviation=borrow_deviation,
        override_changed=override_changed,
        partial_outstanding=state.is_partially_hedged,
    )


async def rebalance_hedge(
    state: VaultState, basket_units: int, *, partial_allowed: bool
) -> OptimalBorrows:
    """Move senior borrow, unhedged buffer and debt to the targets for ``basket_units``.

    ``basket_units`` is gross exposure: basket held plus the unhedged buffer.
    """
    venues = state.venues
    stable = state.config.assets.stable.address

    current_btc, current_eth = await get_current_borrows(state)
    optimal = await get_optimal_borrows_final(
        state, current_btc, current_eth, basket_units, partial_allowed=partial_allowed
    )
    state.phase = (
        RebalancePhase.HEDGING_PARTIAL if optimal.is_partial else RebalancePhase.HEDGING_FULL
    )

    current_senior = await get_senior_borrowed(state)
    if optimal.target_senior_borrow > current_senior:
        amount = optimal.target_senior_borrow - current_senior
        await venues.senior_tranche.borrow(amount)
        await venues.lending_market.supply(stable, amount)
        await rebalance_unhedged_basket(state, optimal, basket_units)
        await rebalance_borrow(state, optimal.btc, current_btc, optimal.eth, current_eth)
    else:
        await rebalance_borrow(state, optimal.btc, current_btc, optimal.eth, current_eth)
        excess = current_senior - optimal.target_senior_borrow
        if excess:
            withdrawn = await venues.lending_market.withdraw(stable, excess, state.address)
            await venues.senior_tranche.repay(withdrawn)
        await rebalance_unhedged_basket(state, optimal, basket_units)
    return optimal


async def rebalance(state: VaultState, caller: str, now: int) -> OptimalBorrows:
    """Keeper rebalance: gate, harvest, reconcile, hedge with partial moves allowed."""
    if not (is_address(caller) and is_same_address(caller, state.config.keeper)):
        raise AuthorizationError(caller, f"Only the keeper may rebalance, not {caller}")

    state.phase = RebalancePhase.GATED
    gate = await check_rebalance_gate(state, now)
    if not gate.eligible:
        state.phase = RebalancePhase.IDLE
        raise RebalanceNotEligibleError("No rebalance condition holds")
    logger.info(f"Rebalance eligible: {', '.join(gate.reasons())}")

    venues = state.venues
    state.btc_trader_override = await venues.trader_oracle.get_btc_override()
    state.eth_trader_override = await venues.trader_oracle.get_eth_override()
    state.cached_btc_reserve, state.cached_eth_reserve = await get_token_reserves(state)

    await before_share_allocation(state)

    gross = await get_gross_basket_units(state)
    optimal = await rebalance_hedge(state, gross, partial_allowed=True)

    if optimal.is_partial:
        state.has_partial_btc_hedge = optimal.is_partial_btc
        state.has_partial_eth_hedge = optimal.is_partial_eth
        logger.warning("Partial hedge executed; user operations suspended")
    else:
        state.last_rebalance_timestamp = now
        state.has_partial_btc_hedge = False
        state.has_partial_eth_hedge = False
    state.phase = RebalancePhase.IDLE
    return optimal


async def before_share_allocation(state: VaultState) -> None:
    state.phase = RebalancePhase.HARVESTING
    await harvest_fees(state)
    state.phase = RebalancePhase.RECONCILING
    await rebalance_profit(state)
    state.phase = RebalancePhase.IDLE


async def after_deposit(state: VaultState) -> OptimalBorrows:
    gross = await get_gross_basket_units(state)
    optimal = await rebalance_hedge(state, gross, partial_allowed=False)
    state.phase = RebalancePhase.IDLE
    return optimal


async def before_withdraw(state: VaultState, assets: int) -> OptimalBorrows:
    gross = await get_gross_basket_units(state)
    optimal = await rebalance_hedge(state, max(0, gross - assets), partial_allowed=False)
    state.phase = RebalancePhase.IDLE
    return optimal
