import pytest

from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.core.errors import VenueError

TOKEN = "0x0000000000000000000000000000000000000a01"
ALICE = "0x00000000000000000000000000000000000000a1"
BOB = "0x00000000000000000000000000000000000000b2"


@pytest.fixture
def ledger():
    ledger = TokenLedgerAdapter()
    ledger.register_token(TOKEN, "USDC", 6)
    return ledger


def test_mint_transfer_burn(ledger):
    ledger.mint(TOKEN, ALICE, 1_000)
    ledger.transfer(TOKEN, ALICE, BOB, 400)
    ledger.burn(TOKEN, BOB, 100)

    assert ledger.balance_of(TOKEN, ALICE) == 600
    assert ledger.balance_of(TOKEN, BOB) == 300
    assert ledger.total_supply(TOKEN) == 900
    assert ledger.symbol(TOKEN) == "USDC"
    assert ledger.decimals(TOKEN) == 6


def test_overdraw_raises(ledger):
    ledger.mint(TOKEN, ALICE, 10)
    with pytest.raises(VenueError):
        ledger.transfer(TOKEN, ALICE, BOB, 11)
    with pytest.raises(VenueError):
        ledger.burn(TOKEN, ALICE, 11)
    assert ledger.balance_of(TOKEN, ALICE) == 10


def test_unknown_token(ledger):
    with pytest.raises(VenueError):
        ledger.balance_of("0x0000000000000000000000000000000000000fff", ALICE)


def test_snapshot_restore(ledger):
    ledger.mint(TOKEN, ALICE, 50)
    snap = ledger.snapshot()
    ledger.transfer(TOKEN, ALICE, BOB, 50)
    ledger.restore(snap)
    assert ledger.balance_of(TOKEN, ALICE) == 50
    assert ledger.balance_of(TOKEN, BOB) == 0
