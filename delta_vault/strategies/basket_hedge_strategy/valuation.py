"""Prices, unit conversions and the vault's net asset value.

Accounting units are stable-asset base units. Token prices follow the basket
manager's convention (USD per whole token, scaled by PRICE_PRECISION).
"""

from __future__ import annotations

from delta_vault.core.constants.base import PRICE_PRECISION
from delta_vault.core.utils.fixed_point import Rounding, add_bps, mul_div

from .types import VaultState


def price_in_stable(price: int, token_decimals: int, stable_decimals: int) -> int:
    """Price of one token base unit in stable base units, scaled by PRICE_PRECISION."""
    return mul_div(price, 10**stable_decimals, 10**token_decimals)


def token_to_stable(
    amount: int, token_price_in_stable: int, rounding: Rounding = Rounding.DOWN
) -> int:
    return mul_div(amount, token_price_in_stable, PRICE_PRECISION, rounding)


def stable_to_token(
    value: int, token_price_in_stable: int, rounding: Rounding = Rounding.DOWN
) -> int:
    return mul_div(value, PRICE_PRECISION, token_price_in_stable, rounding)


async def get_token_price(state: VaultState, asset: str, *, maximize: bool) -> int:
    basket = state.venues.basket_manager
    if maximize:
        return await basket.get_max_price(asset)
    return await basket.get_min_price(asset)


async def token_price_in_stable(
    state: VaultState, asset: str, *, maximize: bool
) -> int:
    assets = state.config.assets
    price = await get_token_price(state, asset, maximize=maximize)
    return price_in_stable(
        price, assets.spec_for(asset).decimals, assets.stable.decimals
    )


async def basket_price_in_stable(state: VaultState, *, maximize: bool) -> int:
    basket = state.venues.basket_manager
    assets = state.config.assets
    supply = await basket.total_supply()
    if supply == 0:
        # Unminted basket is priced at $1
        return price_in_stable(
            PRICE_PRECISION, assets.basket.decimals, assets.stable.decimals
        )
    aum = await basket.get_total_value(maximize)
    return mul_div(aum, 10**assets.stable.decimals, supply)


async def basket_to_stable(
    state: VaultState,
    basket_amount: int,
    *,
    maximize: bool,
    rounding: Rounding = Rounding.DOWN,
) -> int:
    px = await basket_price_in_stable(state, maximize=maximize)
    return token_to_stable(basket_amount, px, rounding)


async def stable_to_basket(
    state: VaultState,
    value: int,
    *,
    maximize: bool,
    rounding: Rounding = Rounding.DOWN,
) -> int:
    px = await basket_price_in_stable(state, maximize=maximize)
    return stable_to_token(value, px, rounding)


async def get_current_borrows(state: VaultState) -> tuple[int, int]:
    lending = state.venues.lending_market
    assets = state.config.assets
    btc = await lending.debt_balance(state.address, assets.btc.address)
    eth = await lending.debt_balance(state.address, assets.eth.address)
    return btc, eth


async def get_borrow_value(
    state: VaultState, btc_amount: int, eth_amount: int, *, maximize: bool = True
) -> int:
    assets = state.config.assets
    btc_px = await token_price_in_stable(state, assets.btc.address, maximize=maximize)
    eth_px = await token_price_in_stable(state, assets.eth.address, maximize=maximize)
    return token_to_stable(btc_amount, btc_px) + token_to_stable(eth_amount, eth_px)


async def get_collateral_balance(state: VaultState) -> int:
    return await state.venues.lending_market.collateral_balance(
        state.address, state.config.assets.stable.address
    )


async def get_senior_borrowed(state: VaultState) -> int:
    # Interest accrued on collateral belongs to the senior tranche
    collateral = await get_collateral_balance(state)
    return max(0, collateral - state.stable_deposited - state.unhedged_basket_value)


async def get_gross_basket_units(state: VaultState) -> int:
    """Basket held plus the unhedged buffer valued back in basket units."""
    held = await state.venues.basket_manager.balance_of(state.address)
    if state.unhedged_basket_value == 0:
        return held
    return held + await stable_to_basket(
        state, state.unhedged_basket_value, maximize=False
    )


async def total_assets(state: VaultState, *, maximize: bool = False) -> int:
    """Net value of the vault in basket units.

    basket held + positive stable (deposited and unhedged) - volatile debt -
    negative stable deposited. Minimizing values debt at the min basket price
    plus basket slippage and positive parts at the max basket price.
    """
    basket_held = await state.venues.basket_manager.balance_of(state.address)
    btc, eth = await get_current_borrows(state)
    borrow_value = await get_borrow_value(state, btc, eth, maximize=not maximize)

    deposited = state.stable_deposited
    negative = -deposited if deposited < 0 else 0
    positive = deposited if deposited > 0 else 0

    debt_basket = await stable_to_basket(
        state, borrow_value + negative, maximize=maximize, rounding=Rounding.UP
    )
    if not maximize:
        debt_basket = add_bps(debt_basket, state.config.slippage_threshold_basket_bps)

    held_basket = await stable_to_basket(
        state, positive + state.unhedged_basket_value, maximize=not maximize
    )
    return max(0, basket_held + held_basket - debt_basket)
