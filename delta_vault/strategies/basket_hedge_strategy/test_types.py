import pytest

from delta_vault.core.errors import ArithmeticOverflowError, ConfigurationError
from delta_vault.core.utils.sandbox import (
    FLASH_LOAN_ADDRESS,
    KEEPER_ADDRESS,
    STABLE_ADDRESS,
    default_assets,
)
from delta_vault.strategies.basket_hedge_strategy.types import (
    LoanLeg,
    RebalanceGate,
    VaultConfig,
)


def _config(**overrides) -> VaultConfig:
    return VaultConfig.from_dict(
        {
            "assets": default_assets(),
            "keeper": KEEPER_ADDRESS,
            "loan_provider": FLASH_LOAN_ADDRESS,
            **overrides,
        }
    )


def test_defaults_and_checksums():
    cfg = _config()
    assert cfg.target_health_factor_bps == 15_000
    assert cfg.keeper.lower() == KEEPER_ADDRESS
    assert cfg.swap_slippage_bps(cfg.assets.btc.address) == cfg.slippage_threshold_btc_bps


@pytest.mark.parametrize(
    "overrides",
    [
        {"target_health_factor_bps": 10_000},
        {"slippage_threshold_btc_bps": 10_001},
        {"min_hedge_threshold": -1},
        {"unknown_knob": 1},
        {"keeper": "not-an-address"},
        {"fee_tier_btc_eth": 1_000_000},
    ],
)
def test_invalid_config_rejected(overrides):
    with pytest.raises(ConfigurationError):
        _config(**overrides)


def test_assets_must_be_distinct():
    assets = default_assets()
    assets["btc"] = {**assets["btc"], "address": STABLE_ADDRESS}
    with pytest.raises(ConfigurationError):
        _config(assets=assets)


def test_updated_revalidates():
    cfg = _config()
    assert cfg.updated(partial_hedge_threshold_eth=5).partial_threshold(
        cfg.assets.eth.address
    ) == 5
    with pytest.raises(ConfigurationError):
        cfg.updated(fee_bps=20_000)


def test_state_signed_accounting(sandbox):
    state = sandbox.vault.state
    state.debit_stable(30)
    state.credit_stable(10)
    assert state.stable_deposited == -20
    with pytest.raises(ArithmeticOverflowError):
        state.credit_stable(-1)

    snap = state.copy()
    state.credit_stable(20)
    assert snap.stable_deposited == -20
    assert state.stable_deposited == 0


def test_gate_and_leg_helpers():
    assert not RebalanceGate().eligible
    gate = RebalanceGate(time_elapsed=True, partial_outstanding=True)
    assert gate.eligible
    assert gate.reasons() == ["time_elapsed", "partial_outstanding"]

    leg = LoanLeg("0xb", 5, 100, repay_debt=True)
    assert leg.loan_asset("0xa") == "0xa"
    assert leg.loan_amount == 100
    assert LoanLeg("0xb", 5, 100).loan_amount == 5
