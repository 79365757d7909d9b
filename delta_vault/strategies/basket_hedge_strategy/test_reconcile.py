import pytest

from delta_vault.core.utils.sandbox import USER_ADDRESS
from delta_vault.strategies.basket_hedge_strategy.reconcile import (
    check_collateral_invariant,
    convert_basket_to_collateral,
    convert_collateral_to_basket,
    is_health_factor_below_threshold,
    rebalance_profit,
    rebalance_unhedged_basket,
)
from delta_vault.strategies.basket_hedge_strategy.types import OptimalBorrows
from delta_vault.strategies.basket_hedge_strategy.valuation import (
    get_borrow_value,
    get_collateral_balance,
    get_current_borrows,
)

BASKET_100K = 100_000 * 10**18


@pytest.fixture
async def hedged(sandbox):
    await sandbox.vault.deposit(BASKET_100K, USER_ADDRESS)
    return sandbox


@pytest.mark.asyncio
async def test_deposit_leaves_collateral_fully_accounted(hedged):
    assert await check_collateral_invariant(hedged.vault.state) == 0
    assert not await is_health_factor_below_threshold(hedged.vault.state)


@pytest.mark.asyncio
async def test_health_factor_threshold_tracks_prices(hedged):
    hedged.set_price("eth", 5_000)
    assert await is_health_factor_below_threshold(hedged.vault.state)


@pytest.mark.asyncio
async def test_profit_drift_moves_to_collateral(hedged):
    state = hedged.vault.state
    btc, eth = await get_current_borrows(state)
    borrow_value = await get_borrow_value(state, btc, eth)
    # Swap fees on the hedge leave deposited stable short of the debt value
    assert state.stable_deposited < borrow_value

    await rebalance_profit(state)
    assert state.stable_deposited == borrow_value
    assert await check_collateral_invariant(state) == 0


@pytest.mark.asyncio
async def test_profit_drift_below_threshold_is_skipped(make_sandbox):
    world = make_sandbox(vault={"profit_threshold": 10**9})
    await world.vault.deposit(BASKET_100K, USER_ADDRESS)
    state = world.vault.state
    before = state.stable_deposited
    await rebalance_profit(state)
    assert state.stable_deposited == before


@pytest.mark.asyncio
async def test_profit_reconcile_is_idempotent(hedged):
    state = hedged.vault.state
    await rebalance_profit(state)
    deposited = state.stable_deposited
    collateral = await get_collateral_balance(state)

    await rebalance_profit(state)
    assert state.stable_deposited == deposited
    assert await get_collateral_balance(state) == collateral


@pytest.mark.asyncio
async def test_basket_collateral_conversions(hedged):
    state = hedged.vault.state
    held = await state.venues.basket_manager.balance_of(state.address)
    collateral = await get_collateral_balance(state)

    out = await convert_basket_to_collateral(state, 1_000 * 10**6)
    assert out == 1_000 * 10**6
    assert await get_collateral_balance(state) == collateral + out
    assert await state.venues.basket_manager.balance_of(state.address) == held - 1_000 * 10**18

    spent = await convert_collateral_to_basket(state, 1_000 * 10**6)
    assert spent == 1_000 * 10**6
    assert await get_collateral_balance(state) == collateral


@pytest.mark.asyncio
async def test_conversion_is_capped_at_basket_held(sandbox):
    state = sandbox.vault.state
    assert await convert_basket_to_collateral(state, 1_000 * 10**6) == 0


@pytest.mark.asyncio
async def test_unhedged_buffer_follows_capped_eth(hedged):
    state = hedged.vault.state
    held = await state.venues.basket_manager.balance_of(state.address)
    capped = OptimalBorrows(
        btc=5 * 10**7,
        eth=5 * 10**18,
        target_senior_borrow=0,
        uncapped_eth=10**19,
        is_capped=True,
    )
    await rebalance_unhedged_basket(state, capped, held)
    assert state.unhedged_basket_value == 50_000 * 10**6
    assert await check_collateral_invariant(state) == 0

    uncapped = OptimalBorrows(
        btc=5 * 10**7, eth=10**19, target_senior_borrow=0, uncapped_eth=10**19
    )
    await rebalance_unhedged_basket(state, uncapped, held)
    assert state.unhedged_basket_value == 0
    assert await check_collateral_invariant(state) == 0
