from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from delta_vault.adapters.price_feed_adapter.adapter import PriceFeedAdapter
from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.constants.base import (
    MAX_BPS,
    MAX_UINT256,
    RAY,
    SECONDS_PER_YEAR,
    VARIABLE_RATE_MODE,
    WAD,
)
from delta_vault.core.errors import VenueError
from delta_vault.core.utils.fixed_point import mul_div

DEFAULT_LIQUIDATION_THRESHOLD_BPS = 8_000


class LendingMarketAdapter(BaseAdapter):
    """Aave-style pool: supplied collateral, variable debt and health factor.

    Acts for ``config["account"]``; reads take any account.
    """

    adapter_type: str = "LENDING_MARKET"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        ledger: TokenLedgerAdapter,
        price_feed: PriceFeedAdapter,
    ):
        super().__init__("lending_market_adapter", config)
        self.ledger = ledger
        self.price_feed = price_feed
        self.account = to_checksum_address(self.config["account"])
        self.liquidation_thresholds: dict[str, int] = {
            to_checksum_address(k): int(v)
            for k, v in (self.config.get("liquidation_thresholds") or {}).items()
        }
        # Annual rates, ray
        self.supply_rates: dict[str, int] = {
            to_checksum_address(k): int(v)
            for k, v in (self.config.get("supply_rates") or {}).items()
        }
        self.borrow_rates: dict[str, int] = {
            to_checksum_address(k): int(v)
            for k, v in (self.config.get("borrow_rates") or {}).items()
        }
        self.collateral: dict[tuple[str, str], int] = {}
        self.debt: dict[tuple[str, str], int] = {}

    # ─────────────────────────────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────────────────────────────

    async def get_reserve_liquidation_threshold(self, asset: str) -> int:
        return self.liquidation_thresholds.get(
            to_checksum_address(asset), DEFAULT_LIQUIDATION_THRESHOLD_BPS
        )

    async def collateral_balance(self, account: str, asset: str) -> int:
        return self.collateral.get(
            (to_checksum_address(account), to_checksum_address(asset)), 0
        )

    async def debt_balance(self, account: str, asset: str) -> int:
        return self.debt.get((to_checksum_address(account), to_checksum_address(asset)), 0)

    def _value(self, asset: str, amount: int) -> int:
        return mul_div(
            amount, self.price_feed.get_price(asset), 10 ** self.ledger.decimals(asset)
        )

    def _health_factor(self, user: str) -> int:
        weighted = 0
        debt_value = 0
        for (account, asset), amount in self.collateral.items():
            if account == user and amount:
                liq = self.liquidation_thresholds.get(
                    asset, DEFAULT_LIQUIDATION_THRESHOLD_BPS
                )
                weighted += mul_div(self._value(asset, amount), liq, MAX_BPS)
        for (account, asset), amount in self.debt.items():
            if account == user and amount:
                debt_value += self._value(asset, amount)
        if debt_value == 0:
            return MAX_UINT256
        return mul_div(weighted, WAD, debt_value)

    async def get_health_factor(self, user: str) -> int:
        return self._health_factor(to_checksum_address(user))

    def _require_healthy(
        self, book: dict[tuple[str, str], int], key: tuple[str, str], prior: int
    ) -> None:
        hf = self._health_factor(self.account)
        if hf < WAD:
            book[key] = prior
            raise VenueError(f"Health factor {hf} would fall below 1")

    # ─────────────────────────────────────────────────────────────────────
    # ACTIONS
    # ─────────────────────────────────────────────────────────────────────

    async def supply(self, asset: str, amount: int) -> None:
        asset = to_checksum_address(asset)
        self.ledger.transfer(asset, self.account, self.address, amount)
        key = (self.account, asset)
        self.collateral[key] = self.collateral.get(key, 0) + amount

    async def withdraw(self, asset: str, amount: int, to: str) -> int:
        key = (self.account, to_checksum_address(asset))
        balance = self.collateral.get(key, 0)
        if amount == MAX_UINT256:
            amount = balance
        if amount > balance:
            raise VenueError(f"Withdraw of {amount} exceeds collateral {balance}")
        self.collateral[key] = balance - amount
        self._require_healthy(self.collateral, key, balance)
        self.ledger.transfer(key[1], self.address, to, amount)
        return amount

    async def borrow(self, asset: str, amount: int, mode: int, on_behalf: str) -> None:
        if mode != VARIABLE_RATE_MODE:
            raise VenueError(f"Unsupported interest rate mode {mode}")
        if to_checksum_address(on_behalf) != self.account:
            raise VenueError("Borrowing on behalf of another account is not delegated")
        key = (self.account, to_checksum_address(asset))
        prior = self.debt.get(key, 0)
        self.debt[key] = prior + amount
        self._require_healthy(self.debt, key, prior)
        self.ledger.transfer(key[1], self.address, self.account, amount)

    async def repay(self, asset: str, amount: int) -> int:
        key = (self.account, to_checksum_address(asset))
        amount = min(amount, self.debt.get(key, 0))
        self.ledger.transfer(key[1], self.account, self.address, amount)
        self.debt[key] = self.debt.get(key, 0) - amount
        return amount

    def accrue_interest(self, seconds: int) -> None:
        """Grow collateral and debt by their simple annual rates over ``seconds``."""
        for book, rates in (
            (self.collateral, self.supply_rates),
            (self.debt, self.borrow_rates),
        ):
            for key, amount in book.items():
                rate = rates.get(key[1], 0)
                if rate and amount:
                    book[key] = amount + mul_div(
                        amount, rate * seconds, RAY * SECONDS_PER_YEAR
                    )
