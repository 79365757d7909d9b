"""Share conversion with the hedge's swap cost charged to the trading user.

A deposit or withdrawal moves the hedge target; the swap loss of reaching it
would otherwise fall on every holder. Previews quote that loss without
executing anything and deduct it from the user's side of the conversion.
"""

from __future__ import annotations

from delta_vault.core.errors import InvalidAmountError, SlippageError
from delta_vault.core.utils.fixed_point import Rounding, mul_div

from .hedge import get_optimal_borrows_final
from .position import path_from_stable, path_to_stable
from .types import Preview, VaultState
from .valuation import (
    get_current_borrows,
    get_gross_basket_units,
    stable_to_basket,
    token_price_in_stable,
    token_to_stable,
    total_assets,
)


def convert_to_shares(
    assets: int, total: int, supply: int, rounding: Rounding = Rounding.DOWN
) -> int:
    if supply == 0:
        return assets
    if total == 0:
        raise InvalidAmountError("Shares are outstanding but the vault holds no assets")
    return mul_div(assets, supply, total, rounding)


def convert_to_assets(
    shares: int, total: int, supply: int, rounding: Rounding = Rounding.DOWN
) -> int:
    if supply == 0:
        return shares
    return mul_div(shares, total, supply, rounding)


async def get_net_position_change(
    state: VaultState, basket_units: int
) -> tuple[int, int]:
    """Signed debt change per asset if the vault held ``basket_units``."""
    current_btc, current_eth = await get_current_borrows(state)
    optimal = await get_optimal_borrows_final(
        state, current_btc, current_eth, basket_units, partial_allowed=False
    )
    return optimal.btc - current_btc, optimal.eth - current_eth


async def quote_swap_slippage_loss(state: VaultState, asset: str, delta: int) -> int:
    """Unfavourable swap cost, in stable, of moving ``asset`` debt by ``delta``."""
    swap = state.venues.swap_venue
    if delta > 0:
        out = await swap.quote_exact_in(path_to_stable(state.config, asset), delta)
        fair = token_to_stable(delta, await token_price_in_stable(state, asset, maximize=False))
        return max(0, fair - out)
    if delta < 0:
        amount = -delta
        cost = await swap.quote_exact_out(path_from_stable(state.config, asset), amount)
        fair = token_to_stable(
            amount,
            await token_price_in_stable(state, asset, maximize=True),
            Rounding.UP,
        )
        return max(0, cost - fair)
    return 0


async def get_slippage_adjusted_assets(
    state: VaultState, assets: int, *, is_deposit: bool
) -> int:
    """Basket units charged for the hedge change caused by moving ``assets``."""
    gross = await get_gross_basket_units(state)
    new_total = gross + assets if is_deposit else max(0, gross - assets)

    btc_delta, eth_delta = await get_net_position_change(state, new_total)
    a = state.config.assets
    loss = await quote_swap_slippage_loss(state, a.btc.address, btc_delta)
    loss += await quote_swap_slippage_loss(state, a.eth.address, eth_delta)

    slippage = await stable_to_basket(state, loss, maximize=False, rounding=Rounding.UP)
    if slippage >= assets:
        raise SlippageError(assets, slippage)
    return slippage


async def preview_deposit(state: VaultState, supply: int, assets: int) -> Preview:
    slippage = await get_slippage_adjusted_assets(state, assets, is_deposit=True)
    total = await total_assets(state)
    shares = convert_to_shares(assets - slippage, total, supply, Rounding.DOWN)
    return Preview(amount=shares, slippage=slippage)


async def preview_mint(state: VaultState, supply: int, shares: int) -> Preview:
    total = await total_assets(state)
    base = convert_to_assets(shares, total, supply, Rounding.UP)
    slippage = await get_slippage_adjusted_assets(state, base, is_deposit=True)
    return Preview(amount=base + slippage, slippage=slippage)


async def preview_withdraw(state: VaultState, supply: int, assets: int) -> Preview:
    slippage = await get_slippage_adjusted_assets(state, assets, is_deposit=False)
    total = await total_assets(state)
    shares = convert_to_shares(assets + slippage, total, supply, Rounding.UP)
    return Preview(amount=shares, slippage=slippage)


async def preview_redeem(state: VaultState, supply: int, shares: int) -> Preview:
    total = await total_assets(state)
    gross = convert_to_assets(shares, total, supply, Rounding.DOWN)
    slippage = await get_slippage_adjusted_assets(state, gross, is_deposit=False)
    return Preview(amount=gross - slippage, slippage=slippage)


async def max_deposit(state: VaultState) -> int:
    if state.is_partially_hedged:
        return 0
    return max(0, state.config.deposit_cap - await total_assets(state, maximize=True))
