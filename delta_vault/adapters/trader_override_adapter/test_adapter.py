import pytest

from delta_vault.adapters.trader_override_adapter.adapter import TraderOverrideAdapter
from delta_vault.core.errors import ArithmeticOverflowError


@pytest.mark.asyncio
async def test_overrides_are_signed_and_independent():
    oracle = TraderOverrideAdapter({"btc_override": -5})
    assert await oracle.get_btc_override() == -5
    assert await oracle.get_eth_override() == 0

    oracle.set_overrides(eth=7)
    assert await oracle.get_btc_override() == -5
    assert await oracle.get_eth_override() == 7


def test_override_must_fit_int256():
    oracle = TraderOverrideAdapter()
    with pytest.raises(ArithmeticOverflowError):
        oracle.set_overrides(btc=2**255)
