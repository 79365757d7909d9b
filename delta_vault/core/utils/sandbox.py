"""In-memory world of venues around one vault, for dry runs and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from delta_vault.adapters.basket_adapter.adapter import BasketAdapter
from delta_vault.adapters.flash_loan_adapter.adapter import FlashLoanAdapter
from delta_vault.adapters.lending_market_adapter.adapter import LendingMarketAdapter
from delta_vault.adapters.price_feed_adapter.adapter import PriceFeedAdapter
from delta_vault.adapters.senior_tranche_adapter.adapter import SeniorTrancheAdapter
from delta_vault.adapters.swap_adapter.adapter import SwapAdapter
from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.adapters.trader_override_adapter.adapter import TraderOverrideAdapter
from delta_vault.core.utils.units import to_erc20_raw
from delta_vault.strategies.basket_hedge_strategy.types import VaultConfig, Venues
from delta_vault.strategies.basket_hedge_strategy.vault import DeltaNeutralBasketVault

VAULT_ADDRESS = "0x00000000000000000000000000000000000000d1"
KEEPER_ADDRESS = "0x00000000000000000000000000000000000000e1"
USER_ADDRESS = "0x00000000000000000000000000000000000000f1"
WHALE_ADDRESS = "0x00000000000000000000000000000000000000f2"

STABLE_ADDRESS = "0x0000000000000000000000000000000000000a01"
BTC_ADDRESS = "0x0000000000000000000000000000000000000b01"
ETH_ADDRESS = "0x0000000000000000000000000000000000000c01"
BASKET_ADDRESS = "0x0000000000000000000000000000000000000d01"

LENDING_POOL_ADDRESS = "0x0000000000000000000000000000000000001001"
BASKET_POOL_ADDRESS = "0x0000000000000000000000000000000000001002"
ROUTER_ADDRESS = "0x0000000000000000000000000000000000001003"
FLASH_LOAN_ADDRESS = "0x0000000000000000000000000000000000001004"
SENIOR_TRANCHE_ADDRESS = "0x0000000000000000000000000000000000001005"

DEFAULT_SANDBOX: dict[str, Any] = {
    "prices_usd": {"stable": 1, "btc": 50_000, "eth": 2_500},
    "spread_bps": 0,
    # Whole tokens held by the basket pool; supply is minted at $1
    "basket_reserves": {"stable": 2_000_000, "btc": 20, "eth": 400},
    "basket_mint_fee_bps": 0,
    "basket_redeem_fee_bps": 0,
    "lending_liquidity": {"stable": 100_000_000, "btc": 1_000, "eth": 20_000},
    "liquidation_threshold_bps": 8_000,
    "router_liquidity": {"stable": 100_000_000, "btc": 1_000, "eth": 20_000},
    "price_impact_bps": 0,
    "flash_loan_liquidity": {"stable": 100_000_000, "btc": 1_000, "eth": 20_000},
    "flash_loan_fee_bps": 0,
    "senior_cash": 10_000_000,
    "senior_borrow_cap": 5_000_000,
    "senior_max_utilization_bps": 9_000,
    "user_basket": 200_000,
}

DEFAULT_VAULT: dict[str, Any] = {
    "min_hedge_threshold": 1_000_000,
    "profit_threshold": 10_000_000,
    "rebalance_time_threshold_seconds": 24 * 60 * 60,
}


class FakeClock:
    def __init__(self, now: int = 1_700_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@dataclass
class SandboxWorld:
    ledger: TokenLedgerAdapter
    prices: PriceFeedAdapter
    lending: LendingMarketAdapter
    basket: BasketAdapter
    swap: SwapAdapter
    flash_loan: FlashLoanAdapter
    senior: SeniorTrancheAdapter
    overrides: TraderOverrideAdapter
    vault: DeltaNeutralBasketVault
    clock: FakeClock
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def config(self) -> VaultConfig:
        return self.vault.config

    def token(self, key: str) -> str:
        return getattr(self.config.assets, key).address

    def units(self, key: str, amount: Any) -> int:
        return to_erc20_raw(amount, getattr(self.config.assets, key).decimals)

    def balance(self, key: str, account: str) -> int:
        return self.ledger.balance_of(self.token(key), account)

    def set_price(self, key: str, usd: Any) -> None:
        self.prices.set_price_usd(self.token(key), usd)


def default_assets() -> dict[str, Any]:
    return {
        "stable": {"address": STABLE_ADDRESS, "symbol": "USDC", "decimals": 6},
        "btc": {"address": BTC_ADDRESS, "symbol": "WBTC", "decimals": 8},
        "eth": {"address": ETH_ADDRESS, "symbol": "WETH", "decimals": 18},
        "basket": {"address": BASKET_ADDRESS, "symbol": "BSK", "decimals": 18},
    }


def build_sandbox(
    params: dict[str, Any] | None = None,
    vault: dict[str, Any] | None = None,
    *,
    clock: FakeClock | None = None,
) -> SandboxWorld:
    p = {**DEFAULT_SANDBOX, **(params or {})}
    config = VaultConfig.from_dict(
        {
            "assets": default_assets(),
            "keeper": KEEPER_ADDRESS,
            "loan_provider": FLASH_LOAN_ADDRESS,
            **DEFAULT_VAULT,
            **(vault or {}),
        }
    )
    assets = config.assets
    keys = ("stable", "btc", "eth")

    ledger = TokenLedgerAdapter()
    for key in (*keys, "basket"):
        spec = getattr(assets, key)
        ledger.register_token(spec.address, spec.symbol, spec.decimals)

    def raw(key: str, amount: Any) -> int:
        return to_erc20_raw(amount, getattr(assets, key).decimals)

    prices = PriceFeedAdapter(
        {
            "spread_bps": p["spread_bps"],
            "prices_usd": {
                getattr(assets, k).address: p["prices_usd"][k] for k in keys
            },
        }
    )
    lending = LendingMarketAdapter(
        {
            "address": LENDING_POOL_ADDRESS,
            "account": VAULT_ADDRESS,
            "liquidation_thresholds": {
                assets.stable.address: p["liquidation_threshold_bps"]
            },
            "supply_rates": p.get("supply_rates", {}),
            "borrow_rates": p.get("borrow_rates", {}),
        },
        ledger=ledger,
        price_feed=prices,
    )
    basket = BasketAdapter(
        {
            "address": BASKET_POOL_ADDRESS,
            "account": VAULT_ADDRESS,
            "basket_token": assets.basket.address,
            "reward_token": assets.eth.address,
            "reserve_tokens": [getattr(assets, k).address for k in keys],
            "mint_fee_bps": p["basket_mint_fee_bps"],
            "redeem_fee_bps": p["basket_redeem_fee_bps"],
        },
        ledger=ledger,
        price_feed=prices,
    )
    swap = SwapAdapter(
        {
            "address": ROUTER_ADDRESS,
            "account": VAULT_ADDRESS,
            "price_impact_bps": p["price_impact_bps"],
        },
        ledger=ledger,
        price_feed=prices,
    )
    flash_loan = FlashLoanAdapter(
        {
            "address": FLASH_LOAN_ADDRESS,
            "account": VAULT_ADDRESS,
            "fee_bps": p["flash_loan_fee_bps"],
        },
        ledger=ledger,
    )
    senior = SeniorTrancheAdapter(
        {
            "address": SENIOR_TRANCHE_ADDRESS,
            "account": VAULT_ADDRESS,
            "asset": assets.stable.address,
            "borrow_cap": raw("stable", p["senior_borrow_cap"]),
            "max_utilization_bps": p["senior_max_utilization_bps"],
        },
        ledger=ledger,
    )
    overrides = TraderOverrideAdapter()

    basket_usd = Decimal(0)
    for key in keys:
        token = getattr(assets, key).address
        reserve = p["basket_reserves"][key]
        ledger.mint(token, BASKET_POOL_ADDRESS, raw(key, reserve))
        basket_usd += Decimal(str(reserve)) * Decimal(str(p["prices_usd"][key]))
        for holder, book in (
            (LENDING_POOL_ADDRESS, "lending_liquidity"),
            (ROUTER_ADDRESS, "router_liquidity"),
            (FLASH_LOAN_ADDRESS, "flash_loan_liquidity"),
        ):
            ledger.mint(token, holder, raw(key, p[book][key]))
    ledger.mint(assets.basket.address, WHALE_ADDRESS, raw("basket", basket_usd))
    ledger.transfer(
        assets.basket.address, WHALE_ADDRESS, USER_ADDRESS, raw("basket", p["user_basket"])
    )
    ledger.mint(assets.stable.address, SENIOR_TRANCHE_ADDRESS, raw("stable", p["senior_cash"]))

    clock = clock or FakeClock()
    venues = Venues(
        lending_market=lending,
        basket_manager=basket,
        swap_venue=swap,
        loan_provider=flash_loan,
        senior_tranche=senior,
        trader_oracle=overrides,
        extras=(ledger, prices),
    )
    vault_obj = DeltaNeutralBasketVault(VAULT_ADDRESS, config, venues, clock=clock)
    return SandboxWorld(
        ledger=ledger,
        prices=prices,
        lending=lending,
        basket=basket,
        swap=swap,
        flash_loan=flash_loan,
        senior=senior,
        overrides=overrides,
        vault=vault_obj,
        clock=clock,
        params=p,
    )

