from __future__ import annotations

import dataclasses
from typing import Any

from delta_vault.core.errors import VaultError
from delta_vault.core.strategies.Strategy import StatusDict, StatusTuple, Strategy
from delta_vault.core.utils.units import from_erc20_raw, to_erc20_raw

from .vault import DeltaNeutralBasketVault


class BasketHedgeStrategy(Strategy):
    """Keeper-facing wrapper around a delta-neutral basket vault."""

    name = "Basket Hedge Strategy"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        vault: DeltaNeutralBasketVault,
        account: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(config, **kwargs)
        self.vault = vault
        self.keeper = self.config.get("keeper") or vault.config.keeper
        # Account whose shares deposit/withdraw/exit act on
        self.account = account or self.keeper
        self.net_deposit = 0

    @property
    def basket_decimals(self) -> int:
        return self.vault.config.assets.basket.decimals

    async def deposit(self, main_token_amount: float = 0.0, **kwargs: Any) -> StatusTuple:
        if main_token_amount <= 0:
            return (False, "main_token_amount must be positive")
        assets = to_erc20_raw(main_token_amount, self.basket_decimals)
        try:
            shares = await self.vault.deposit(assets, self.account)
        except VaultError as exc:
            return (False, f"Deposit failed: {exc}")
        self.net_deposit += assets
        return (True, f"Deposited {main_token_amount} basket for {shares} shares")

    async def withdraw(self, amount: float | None = None, **kwargs: Any) -> StatusTuple:
        if amount is None:
            return await self.exit()
        assets = to_erc20_raw(amount, self.basket_decimals)
        try:
            shares = await self.vault.withdraw(assets, self.account, self.account)
        except VaultError as exc:
            return (False, f"Withdraw failed: {exc}")
        self.net_deposit -= assets
        return (True, f"Withdrew {amount} basket burning {shares} shares")

    async def update(self) -> StatusTuple:
        try:
            gate = await self.vault.check_rebalance_gate()
            if not gate.eligible:
                return (True, "Hedge within thresholds; no rebalance needed")
            result = await self.vault.rebalance(self.keeper)
        except VaultError as exc:
            return (False, f"Rebalance failed: {exc}")
        if result.is_partial:
            return (True, "Partial hedge executed; another rebalance is required")
        return (True, f"Rebalanced ({', '.join(gate.reasons())})")

    async def exit(self, **kwargs: Any) -> StatusTuple:
        shares = self.vault.shares.balance_of(self.account)
        if shares == 0:
            return (True, "No shares to redeem")
        try:
            assets = await self.vault.redeem(shares, self.account, self.account)
        except VaultError as exc:
            return (False, f"Exit failed: {exc}")
        self.net_deposit -= assets
        return (True, f"Redeemed {shares} shares for {assets} basket")

    async def _status(self) -> StatusDict:
        status = await self.vault.status()
        shares = self.vault.shares.balance_of(self.account)
        value = await self.vault.convert_to_assets(shares) if shares else 0
        return StatusDict(
            portfolio_value=float(from_erc20_raw(value, self.basket_decimals)),
            net_deposit=float(from_erc20_raw(self.net_deposit, self.basket_decimals)),
            strategy_status=dataclasses.asdict(status),
        )
