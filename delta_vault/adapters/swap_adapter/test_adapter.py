import pytest

from delta_vault.adapters.price_feed_adapter.adapter import PriceFeedAdapter
from delta_vault.adapters.swap_adapter.adapter import SwapAdapter
from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.core.errors import VenueError
from delta_vault.core.utils.swap_path import SwapPath

STABLE = "0x0000000000000000000000000000000000000a01"
BTC = "0x0000000000000000000000000000000000000b01"
ETH = "0x0000000000000000000000000000000000000c01"
ROUTER = "0x0000000000000000000000000000000000001003"
VAULT = "0x00000000000000000000000000000000000000d1"


def _make(price_impact_bps: int = 0) -> SwapAdapter:
    ledger = TokenLedgerAdapter()
    for token, symbol, decimals in ((STABLE, "USDC", 6), (BTC, "WBTC", 8), (ETH, "WETH", 18)):
        ledger.register_token(token, symbol, decimals)
        ledger.mint(token, ROUTER, 10**30)
    ledger.mint(ETH, VAULT, 10 * 10**18)
    prices = PriceFeedAdapter({"prices_usd": {STABLE: 1, BTC: 50_000, ETH: 2_500}})
    return SwapAdapter(
        {"address": ROUTER, "account": VAULT, "price_impact_bps": price_impact_bps},
        ledger=ledger,
        price_feed=prices,
    )


@pytest.mark.asyncio
async def test_exact_in_charges_fee_per_hop():
    swap = _make()
    one_hop = await swap.quote_exact_in(SwapPath.build(ETH, 500, STABLE), 10**18)
    assert one_hop == 2_498_750_000

    two_hop = await swap.quote_exact_in(
        SwapPath.build(BTC, 500, ETH, 500, STABLE), 10**8
    )
    assert two_hop < 50_000 * 10**6 * 9_995 // 10_000


@pytest.mark.asyncio
async def test_exact_out_costs_at_least_fair_value():
    swap = _make(price_impact_bps=10)
    cost = await swap.quote_exact_out(SwapPath.build(STABLE, 500, ETH), 10**18)
    assert cost > 2_500 * 10**6


@pytest.mark.asyncio
async def test_swap_enforces_bounds_and_settles():
    swap = _make()
    path = SwapPath.build(ETH, 500, STABLE)
    with pytest.raises(VenueError):
        await swap.swap_exact_in(path, 10**18, 2_500 * 10**6)

    out = await swap.swap_exact_in(path, 10**18, 2_400 * 10**6)
    assert swap.ledger.balance_of(STABLE, VAULT) == out
    assert swap.ledger.balance_of(ETH, VAULT) == 9 * 10**18
    assert swap.swaps[-1]["amount_out"] == out

    with pytest.raises(VenueError):
        await swap.swap_exact_out(SwapPath.build(STABLE, 500, ETH), 10**17, 1)
