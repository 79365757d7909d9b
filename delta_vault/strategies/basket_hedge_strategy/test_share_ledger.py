import pytest

from delta_vault.core.errors import AuthorizationError, InvalidAmountError
from delta_vault.strategies.basket_hedge_strategy.share_ledger import ShareLedger

ALICE = "0x00000000000000000000000000000000000000a1"
BOB = "0x00000000000000000000000000000000000000b2"


def test_mint_burn_transfer():
    shares = ShareLedger()
    shares.mint(ALICE, 100)
    shares.transfer(ALICE, BOB, 40)
    shares.burn(BOB, 10)
    assert shares.balance_of(ALICE) == 60
    assert shares.balance_of(BOB) == 30
    assert shares.total_supply == 90

    with pytest.raises(InvalidAmountError):
        shares.burn(BOB, 31)


def test_allowance_is_spent():
    shares = ShareLedger()
    shares.approve(ALICE, BOB, 50)
    shares.spend_allowance(ALICE, BOB, 20)
    assert shares.allowance(ALICE, BOB) == 30
    with pytest.raises(AuthorizationError):
        shares.spend_allowance(ALICE, BOB, 31)


def test_snapshot_restore():
    shares = ShareLedger()
    shares.mint(ALICE, 5)
    snap = shares.snapshot()
    shares.mint(BOB, 7)
    shares.approve(ALICE, BOB, 1)
    shares.restore(snap)
    assert shares.total_supply == 5
    assert shares.balance_of(BOB) == 0
    assert shares.allowance(ALICE, BOB) == 0
