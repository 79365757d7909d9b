import pytest

from delta_vault.adapters.basket_adapter.adapter import BasketAdapter
from delta_vault.adapters.price_feed_adapter.adapter import PriceFeedAdapter
from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.core.adapters.interfaces import RewardClaim
from delta_vault.core.constants.base import PRICE_PRECISION
from delta_vault.core.errors import VenueError

STABLE = "0x0000000000000000000000000000000000000a01"
BTC = "0x0000000000000000000000000000000000000b01"
ETH = "0x0000000000000000000000000000000000000c01"
BASKET = "0x0000000000000000000000000000000000000d01"
POOL = "0x0000000000000000000000000000000000001002"
VAULT = "0x00000000000000000000000000000000000000d1"
WHALE = "0x00000000000000000000000000000000000000f2"


def _make(seed_supply: bool = True, spread_bps: int = 0) -> BasketAdapter:
    ledger = TokenLedgerAdapter()
    for token, symbol, decimals in (
        (STABLE, "USDC", 6),
        (BTC, "WBTC", 8),
        (ETH, "WETH", 18),
        (BASKET, "BSK", 18),
    ):
        ledger.register_token(token, symbol, decimals)
    prices = PriceFeedAdapter(
        {
            "spread_bps": spread_bps,
            "prices_usd": {STABLE: 1, BTC: 50_000, ETH: 2_500},
        }
    )
    if seed_supply:
        ledger.mint(STABLE, POOL, 1_000 * 10**6)
        ledger.mint(BTC, POOL, 2 * 10**6)
        ledger.mint(ETH, POOL, 4 * 10**17)
        ledger.mint(BASKET, WHALE, 3_000 * 10**18)
    ledger.mint(STABLE, VAULT, 1_000 * 10**6)
    return BasketAdapter(
        {
            "address": POOL,
            "account": VAULT,
            "basket_token": BASKET,
            "reward_token": ETH,
            "reserve_tokens": [STABLE, BTC, ETH],
        },
        ledger=ledger,
        price_feed=prices,
    )


@pytest.mark.asyncio
async def test_reads():
    basket = _make()
    assert await basket.get_total_value(False) == 3_000 * PRICE_PRECISION
    assert await basket.get_underlying_reserve(BTC) == 2 * 10**6
    assert await basket.total_supply() == 3_000 * 10**18
    with pytest.raises(VenueError):
        await basket.get_underlying_reserve(BASKET)


@pytest.mark.asyncio
async def test_aum_uses_min_and_max_prices():
    basket = _make(spread_bps=100)
    low = await basket.get_total_value(False)
    high = await basket.get_total_value(True)
    assert low < 3_000 * PRICE_PRECISION < high


@pytest.mark.asyncio
async def test_mint_then_redeem_at_par():
    basket = _make()
    minted = await basket.mint_basket_token(STABLE, 300 * 10**6, 0)
    assert minted == 300 * 10**18
    assert await basket.balance_of(VAULT) == minted

    out = await basket.redeem_basket_token(STABLE, minted, 300 * 10**6)
    assert out == 300 * 10**6
    assert basket.ledger.balance_of(STABLE, VAULT) == 1_000 * 10**6


@pytest.mark.asyncio
async def test_first_mint_prices_basket_at_one_dollar():
    basket = _make(seed_supply=False)
    assert await basket.mint_basket_token(STABLE, 10 * 10**6, 0) == 10 * 10**18


@pytest.mark.asyncio
async def test_min_out_enforced():
    basket = _make()
    with pytest.raises(VenueError):
        await basket.mint_basket_token(STABLE, 300 * 10**6, 300 * 10**18 + 1)
    assert basket.ledger.balance_of(STABLE, VAULT) == 1_000 * 10**6


@pytest.mark.asyncio
async def test_rewards_accrue_until_claimed():
    basket = _make()
    basket.add_rewards(5 * 10**17, 7)
    claim = await basket.claim_rewards()
    assert claim == RewardClaim(reward_amount=5 * 10**17, escrowed_amount=7)
    assert basket.ledger.balance_of(ETH, VAULT) == 5 * 10**17
    assert basket.escrowed[basket.account] == 7
    assert await basket.claim_rewards() == RewardClaim(0, 0)
