"""Debt adjustment through a single uncollateralized loan.

Increasing a debt borrows the volatile token, sells it for stable, supplies
the proceeds and borrows the token back from the lending market to repay the
loan. Decreasing a debt borrows stable, buys the token, repays lending-market
debt and withdraws stable collateral to repay the loan.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence

from eth_abi import decode, encode
from eth_utils import is_address, is_same_address, to_checksum_address
from loguru import logger

from delta_vault.core.constants.base import VARIABLE_RATE_MODE
from delta_vault.core.errors import AuthorizationError, LoanGuardError
from delta_vault.core.utils.fixed_point import Rounding, add_bps, mul_div, sub_bps
from delta_vault.core.utils.swap_path import SwapPath, address_key

from .constants import LOAN_CALLBACK_ABI_TYPES
from .types import LoanLeg, LoanRequest, LoanTicket, VaultConfig, VaultState
from .valuation import token_price_in_stable, token_to_stable

# ─────────────────────────────────────────────────────────────────────────────
# SWAP ROUTES
# ─────────────────────────────────────────────────────────────────────────────


def path_to_stable(config: VaultConfig, asset: str) -> SwapPath:
    a = config.assets
    if to_checksum_address(asset) == a.btc.address:
        return SwapPath.build(
            a.btc.address,
            config.fee_tier_btc_eth,
            a.eth.address,
            config.fee_tier_eth_stable,
            a.stable.address,
        )
    return SwapPath.build(a.eth.address, config.fee_tier_eth_stable, a.stable.address)


def path_from_stable(config: VaultConfig, asset: str) -> SwapPath:
    return path_to_stable(config, asset).reversed()


# ─────────────────────────────────────────────────────────────────────────────
# LOAN SIZING
# ─────────────────────────────────────────────────────────────────────────────


def loan_leg(
    asset: str,
    optimal: int,
    current: int,
    *,
    min_price: int,
    max_price: int,
    slippage_bps: int,
    min_hedge_threshold: int,
) -> LoanLeg:
    """Size one asset's leg; prices are token prices in stable."""
    if optimal > current:
        amount = optimal - current
        bound = sub_bps(token_to_stable(amount, min_price), slippage_bps)
        leg = LoanLeg(asset=asset, token_amount=amount, stable_bound=bound)
    elif optimal < current:
        amount = current - optimal
        bound = add_bps(token_to_stable(amount, max_price, Rounding.UP), slippage_bps)
        leg = LoanLeg(
            asset=asset, token_amount=amount, stable_bound=bound, repay_debt=True
        )
    else:
        return LoanLeg(asset=asset)

    if leg.stable_bound < min_hedge_threshold:
        logger.debug(
            f"Skipping {asset} leg: {leg.stable_bound} below min hedge {min_hedge_threshold}"
        )
        return LoanLeg(asset=asset)
    return leg


async def flashloan_amounts(
    state: VaultState, asset: str, optimal: int, current: int
) -> LoanLeg:
    cfg = state.config
    return loan_leg(
        asset,
        optimal,
        current,
        min_price=await token_price_in_stable(state, asset, maximize=False),
        max_price=await token_price_in_stable(state, asset, maximize=True),
        slippage_bps=cfg.swap_slippage_bps(asset),
        min_hedge_threshold=cfg.min_hedge_threshold,
    )


def build_loan_request(
    btc_leg: LoanLeg, eth_leg: LoanLeg, stable: str
) -> LoanRequest | None:
    """One request for both legs, assets merged and sorted by address."""
    legs = [leg for leg in (btc_leg, eth_leg) if not leg.is_empty]
    if not legs:
        return None
    if len(legs) == 2 and btc_leg.repay_debt and eth_leg.repay_debt:
        return LoanRequest(
            assets=[stable], amounts=[btc_leg.stable_bound + eth_leg.stable_bound]
        )
    entries = sorted(
        ((leg.loan_asset(stable), leg.loan_amount) for leg in legs),
        key=lambda e: address_key(e[0]),
    )
    return LoanRequest(assets=[a for a, _ in entries], amounts=[n for _, n in entries])


def encode_callback_data(nonce: int, btc_leg: LoanLeg, eth_leg: LoanLeg) -> bytes:
    return encode(
        LOAN_CALLBACK_ABI_TYPES,
        [
            nonce,
            btc_leg.token_amount,
            btc_leg.stable_bound,
            eth_leg.token_amount,
            eth_leg.stable_bound,
            btc_leg.repay_debt,
            eth_leg.repay_debt,
        ],
    )


def decode_callback_data(
    config: VaultConfig, data: bytes
) -> tuple[int, LoanLeg, LoanLeg]:
    (
        nonce,
        btc_amount,
        btc_bound,
        eth_amount,
        eth_bound,
        repay_btc,
        repay_eth,
    ) = decode(LOAN_CALLBACK_ABI_TYPES, data)
    btc_leg = LoanLeg(config.assets.btc.address, btc_amount, btc_bound, repay_btc)
    eth_leg = LoanLeg(config.assets.eth.address, eth_amount, eth_bound, repay_eth)
    return nonce, btc_leg, eth_leg


# ─────────────────────────────────────────────────────────────────────────────
# LOAN GUARD
# ─────────────────────────────────────────────────────────────────────────────


def begin_loan(state: VaultState) -> LoanTicket:
    if state.in_flight_loan is not None:
        raise LoanGuardError(None, "A loan is already in flight")
    state.loan_nonce += 1
    ticket = LoanTicket(nonce=state.loan_nonce)
    state.in_flight_loan = ticket
    return ticket


def complete_loan(state: VaultState, ticket: LoanTicket) -> None:
    current = state.in_flight_loan
    if current is None or current.nonce != ticket.nonce:
        raise LoanGuardError(None, f"Loan ticket {ticket.nonce} is not in flight")
    state.in_flight_loan = None
    if not current.consumed:
        raise LoanGuardError(None, "Loan returned without running its callback")


def _consume_ticket(state: VaultState, caller: str, nonce: int) -> None:
    ticket = state.in_flight_loan
    if ticket is None or ticket.consumed:
        raise LoanGuardError(caller, "Loan callback without an in-flight loan")
    if ticket.nonce != nonce:
        raise LoanGuardError(caller, "Loan callback for a different loan")
    state.in_flight_loan = dataclasses.replace(ticket, consumed=True)


# ─────────────────────────────────────────────────────────────────────────────
# CALLBACK EXECUTION
# ─────────────────────────────────────────────────────────────────────────────


def _leg_fees(
    state: VaultState,
    btc_leg: LoanLeg,
    eth_leg: LoanLeg,
    assets: Sequence[str],
    amounts: Sequence[int],
    fees: Sequence[int],
) -> tuple[int, int]:
    stable = state.config.assets.stable.address
    index = {to_checksum_address(a): i for i, a in enumerate(assets)}

    def fee_for(leg: LoanLeg) -> int:
        if leg.is_empty:
            return 0
        i = index.get(leg.loan_asset(stable))
        if i is None:
            raise LoanGuardError(None, f"Loan does not cover {leg.loan_asset(stable)}")
        return fees[i]

    if (
        not btc_leg.is_empty
        and not eth_leg.is_empty
        and btc_leg.repay_debt
        and eth_leg.repay_debt
    ):
        i = index.get(stable)
        if i is None:
            raise LoanGuardError(None, "Loan does not cover the stable asset")
        # Shared stable leg: premium split pro-rata
        btc_fee = mul_div(fees[i], btc_leg.stable_bound, amounts[i])
        return btc_fee, fees[i] - btc_fee
    return fee_for(btc_leg), fee_for(eth_leg)


async def _increase_debt(state: VaultState, leg: LoanLeg, fee: int) -> None:
    venues = state.venues
    stable = state.config.assets.stable.address
    out = await venues.swap_venue.swap_exact_in(
        path_to_stable(state.config, leg.asset), leg.token_amount, leg.stable_bound
    )
    await venues.lending_market.supply(stable, out)
    await venues.lending_market.borrow(
        leg.asset, leg.token_amount + fee, VARIABLE_RATE_MODE, state.address
    )
    state.credit_stable(out)
    logger.debug(f"Increased {leg.asset} debt by {leg.token_amount} (+{fee} fee), proceeds {out}")


async def _decrease_debt(state: VaultState, leg: LoanLeg, fee: int) -> None:
    venues = state.venues
    stable = state.config.assets.stable.address
    cost = await venues.swap_venue.swap_exact_out(
        path_from_stable(state.config, leg.asset), leg.token_amount, leg.stable_bound
    )
    await venues.lending_market.repay(leg.asset, leg.token_amount)
    await venues.lending_market.withdraw(stable, cost + fee, state.address)
    state.debit_stable(cost + fee)
    logger.debug(f"Decreased {leg.asset} debt by {leg.token_amount}, cost {cost} (+{fee} fee)")


async def handle_loan_callback(
    state: VaultState,
    caller: str,
    assets: Sequence[str],
    amounts: Sequence[int],
    fees: Sequence[int],
    data: bytes,
) -> list[int]:
    """Execute both legs and return the amount handed back per loan asset."""
    if not (is_address(caller) and is_same_address(caller, state.config.loan_provider)):
        raise AuthorizationError(caller, f"Loan callback from unexpected caller {caller}")
    if len(assets) != len(amounts) or len(assets) != len(fees):
        raise LoanGuardError(caller, "Loan assets, amounts and fees differ in length")

    nonce, btc_leg, eth_leg = decode_callback_data(state.config, data)
    _consume_ticket(state, caller, nonce)

    btc_fee, eth_fee = _leg_fees(state, btc_leg, eth_leg, assets, amounts, fees)
    for leg, fee in ((btc_leg, btc_fee), (eth_leg, eth_fee)):
        if leg.is_empty:
            continue
        if leg.repay_debt:
            await _decrease_debt(state, leg, fee)
        else:
            await _increase_debt(state, leg, fee)

    # Principal plus fee for every loan asset
    return [amount + fee for amount, fee in zip(amounts, fees, strict=True)]


class LoanCallbackReceiver:
    """Binds the loan callback to the state of the operation that requested it."""

    def __init__(self, state: VaultState):
        self.state = state

    async def on_loan_received(
        self,
        caller: str,
        assets: Sequence[str],
        amounts: Sequence[int],
        fees: Sequence[int],
        data: bytes,
    ) -> list[int]:
        return await handle_loan_callback(
            self.state, caller, assets, amounts, fees, data
        )


async def rebalance_borrow(
    state: VaultState,
    optimal_btc: int,
    current_btc: int,
    optimal_eth: int,
    current_eth: int,
) -> None:
    cfg = state.config
    btc_leg = await flashloan_amounts(state, cfg.assets.btc.address, optimal_btc, current_btc)
    eth_leg = await flashloan_amounts(state, cfg.assets.eth.address, optimal_eth, current_eth)

    request = build_loan_request(btc_leg, eth_leg, cfg.assets.stable.address)
    if request is None:
        logger.debug("Debt already at target; no loan needed")
        return

    ticket = begin_loan(state)
    data = encode_callback_data(ticket.nonce, btc_leg, eth_leg)
    try:
        await state.venues.loan_provider.request_loan(
            LoanCallbackReceiver(state), request.assets, request.amounts, data
        )
    except Exception:
        state.in_flight_loan = None
        raise
    complete_loan(state, ticket)
    logger.info(
        f"Rebalanced debt: btc {current_btc} -> {optimal_btc}, eth {current_eth} -> {optimal_eth}"
    )
