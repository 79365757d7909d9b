import pytest

from delta_vault.core.constants.base import MAX_UINT256
from delta_vault.core.errors import (
    AuthorizationError,
    CapacityError,
    ConfigurationError,
    InvalidAmountError,
    LoanGuardError,
    RebalanceNotEligibleError,
)
from delta_vault.core.utils.sandbox import (
    FLASH_LOAN_ADDRESS,
    KEEPER_ADDRESS,
    USER_ADDRESS,
    VAULT_ADDRESS,
    WHALE_ADDRESS,
)
from delta_vault.strategies.basket_hedge_strategy.position import LoanCallbackReceiver

BASKET_100K = 100_000 * 10**18


@pytest.mark.asyncio
async def test_deposit_mints_shares_and_hedges(sandbox):
    vault = sandbox.vault
    before = sandbox.balance("basket", USER_ADDRESS)

    shares = await vault.deposit(BASKET_100K, USER_ADDRESS)

    assert shares == vault.shares.balance_of(USER_ADDRESS) > 0
    assert sandbox.balance("basket", USER_ADDRESS) == before - BASKET_100K
    status = await vault.status()
    assert status.current_btc_borrow == 5 * 10**7
    assert status.current_eth_borrow == 10**19
    assert status.senior_borrowed == 43_750 * 10**6
    assert status.collateral_residual == 0
    assert status.extra == {"phase": "IDLE", "loan_nonce": 1}


@pytest.mark.asyncio
async def test_invalid_amounts(sandbox):
    vault = sandbox.vault
    with pytest.raises(InvalidAmountError):
        await vault.deposit(0, USER_ADDRESS)
    with pytest.raises(InvalidAmountError):
        await vault.redeem(0, USER_ADDRESS, USER_ADDRESS)


@pytest.mark.asyncio
async def test_deposit_cap(make_sandbox):
    world = make_sandbox(vault={"deposit_cap": 10 * 10**18})
    with pytest.raises(CapacityError):
        await world.vault.deposit(BASKET_100K, USER_ADDRESS)
    assert world.vault.shares.total_supply == 0
    assert await world.vault.max_deposit() == 10 * 10**18


@pytest.mark.asyncio
async def test_withdraw_by_third_party_needs_allowance(sandbox):
    vault = sandbox.vault
    await vault.deposit(BASKET_100K, USER_ADDRESS)
    shares = vault.shares.balance_of(USER_ADDRESS)
    collateral = await sandbox.lending.collateral_balance(VAULT_ADDRESS, sandbox.token("stable"))

    with pytest.raises(AuthorizationError):
        await vault.withdraw(10_000 * 10**18, WHALE_ADDRESS, USER_ADDRESS, caller=WHALE_ADDRESS)
    assert vault.shares.balance_of(USER_ADDRESS) == shares
    assert (
        await sandbox.lending.collateral_balance(VAULT_ADDRESS, sandbox.token("stable"))
        == collateral
    )

    vault.shares.approve(USER_ADDRESS, WHALE_ADDRESS, shares)
    whale_before = sandbox.balance("basket", WHALE_ADDRESS)
    burned = await vault.withdraw(
        10_000 * 10**18, WHALE_ADDRESS, USER_ADDRESS, caller=WHALE_ADDRESS
    )
    assert sandbox.balance("basket", WHALE_ADDRESS) == whale_before + 10_000 * 10**18
    assert vault.shares.allowance(USER_ADDRESS, WHALE_ADDRESS) == shares - burned


@pytest.mark.asyncio
async def test_mint_pulls_assets_for_exact_shares(sandbox):
    vault = sandbox.vault
    before = sandbox.balance("basket", USER_ADDRESS)
    assets = await vault.mint(50_000 * 10**18, USER_ADDRESS)
    assert vault.shares.balance_of(USER_ADDRESS) == 50_000 * 10**18
    assert assets > 50_000 * 10**18
    assert sandbox.balance("basket", USER_ADDRESS) == before - assets


@pytest.mark.asyncio
async def test_redeem_everything(sandbox):
    vault = sandbox.vault
    await vault.deposit(BASKET_100K, USER_ADDRESS)
    shares = await vault.max_redeem(USER_ADDRESS)
    before = sandbox.balance("basket", USER_ADDRESS)

    assets = await vault.redeem(shares, USER_ADDRESS, USER_ADDRESS)

    assert vault.shares.total_supply == 0
    assert sandbox.balance("basket", USER_ADDRESS) == before + assets
    assert 99_000 * 10**18 < assets < BASKET_100K
    assert (await vault.status()).collateral_residual == 0


@pytest.mark.asyncio
async def test_rebalance_entry_points(sandbox):
    vault = sandbox.vault
    await vault.deposit(BASKET_100K, USER_ADDRESS)
    with pytest.raises(AuthorizationError):
        await vault.rebalance(USER_ADDRESS)
    await vault.rebalance(KEEPER_ADDRESS)
    with pytest.raises(RebalanceNotEligibleError):
        await vault.rebalance(KEEPER_ADDRESS)


@pytest.mark.asyncio
async def test_loan_callback_outside_a_loan_is_rejected(sandbox):
    vault = sandbox.vault
    # The operation-bound receiver is the only callback entry point
    assert not hasattr(vault, "on_loan_received")
    receiver = LoanCallbackReceiver(vault.state)
    with pytest.raises(LoanGuardError):
        await receiver.on_loan_received(FLASH_LOAN_ADDRESS, [], [], [], b"\x00" * 224)
    with pytest.raises(AuthorizationError):
        await receiver.on_loan_received(USER_ADDRESS, [], [], [], b"\x00" * 224)


@pytest.mark.asyncio
async def test_configure(sandbox):
    vault = sandbox.vault
    with pytest.raises(ConfigurationError):
        await vault.configure(target_health_factor_bps=8_000)
    with pytest.raises(ConfigurationError):
        await vault.configure(not_a_field=1)

    cfg = await vault.configure(target_health_factor_bps=20_000, min_hedge_threshold=0)
    assert vault.config is cfg
    assert cfg.target_health_factor_bps == 20_000


@pytest.mark.asyncio
async def test_views_on_empty_vault(sandbox):
    vault = sandbox.vault
    assert await vault.total_assets() == 0
    assert await vault.convert_to_shares(123) == 123
    assert await vault.max_withdraw(USER_ADDRESS) == 0
    assert await vault.max_mint(USER_ADDRESS) > 0
    preview = await vault.preview_deposit(BASKET_100K)
    assert preview.amount + preview.slippage == BASKET_100K


@pytest.mark.asyncio
async def test_max_mint_after_deposit_with_unbounded_cap(sandbox):
    vault = sandbox.vault
    await vault.deposit(BASKET_100K, USER_ADDRESS)
    # Min valuation sits below share supply once debt is grossed up
    assert await vault.total_assets() < vault.shares.total_supply
    assert await vault.max_mint(USER_ADDRESS) == MAX_UINT256


@pytest.mark.asyncio
async def test_max_mint_with_finite_cap(make_sandbox):
    world = make_sandbox(vault={"deposit_cap": 200_000 * 10**18})
    vault = world.vault
    await vault.deposit(BASKET_100K, USER_ADDRESS)
    cap = await vault.max_deposit()
    total = await vault.total_assets()
    assert 0 < cap < 200_000 * 10**18
    assert await vault.max_mint(USER_ADDRESS) == cap * vault.shares.total_supply // total
