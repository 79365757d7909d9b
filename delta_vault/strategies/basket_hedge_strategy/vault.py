"""Share-token surface of the vault.

Every mutating entry point runs as one transaction: the vault state, the share
ledger and every venue that can snapshot itself are restored when anything
raises, so a failed call leaves no trace.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from eth_utils import to_checksum_address
from loguru import logger

from delta_vault.core.constants.base import MAX_UINT256
from delta_vault.core.errors import (
    CapacityError,
    CollaboratorError,
    ConfigurationError,
    InvalidAmountError,
    PartialHedgeError,
    VaultError,
)
from delta_vault.core.utils.fixed_point import Rounding

from . import orchestrator, pricing
from .reconcile import check_collateral_invariant
from .share_ledger import ShareLedger
from .types import (
    OptimalBorrows,
    Preview,
    RebalanceGate,
    VaultConfig,
    VaultState,
    VaultStatus,
    Venues,
)
from .valuation import (
    get_borrow_value,
    get_collateral_balance,
    get_current_borrows,
    get_senior_borrowed,
    total_assets,
)


def _default_clock() -> int:
    return int(time.time())


class DeltaNeutralBasketVault:
    def __init__(
        self,
        address: str,
        config: VaultConfig,
        venues: Venues,
        *,
        clock: Callable[[], int] | None = None,
        shares: ShareLedger | None = None,
    ):
        self.address = to_checksum_address(address)
        self.shares = shares or ShareLedger()
        self.clock = clock or _default_clock
        self.logger = logger.bind(vault=self.address)
        self._state = VaultState(address=self.address, config=config, venues=venues)
        self._lock = asyncio.Lock()

    @property
    def state(self) -> VaultState:
        return self._state

    @property
    def config(self) -> VaultConfig:
        return self._state.config

    @property
    def is_partially_hedged(self) -> bool:
        return self._state.is_partially_hedged

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[VaultState]:
        async with self._lock:
            state_snap = self._state.copy()
            share_snap = self.shares.snapshot()
            venue_snaps = [
                (venue, venue.snapshot())
                for venue in self._state.venues.transactional()
            ]
            try:
                yield self._state
            except Exception as exc:
                self._state = state_snap
                self.shares.restore(share_snap)
                for venue, snap in venue_snaps:
                    venue.restore(snap)
                self.logger.error(f"{operation} rolled back: {exc}")
                if isinstance(exc, VaultError):
                    raise
                raise CollaboratorError(operation, exc) from exc

    def _ensure_fully_hedged(self, state: VaultState) -> None:
        if state.is_partially_hedged:
            raise PartialHedgeError()

    # ─────────────────────────────────────────────────────────────────────
    # USER ENTRY POINTS
    # ─────────────────────────────────────────────────────────────────────

    async def deposit(
        self, assets: int, receiver: str, *, caller: str | None = None
    ) -> int:
        if assets <= 0:
            raise InvalidAmountError("Deposit amount must be positive")
        caller = caller or receiver
        async with self._transaction("deposit") as state:
            self._ensure_fully_hedged(state)
            cap = await pricing.max_deposit(state)
            if assets > cap:
                raise CapacityError(assets, cap)

            await orchestrator.before_share_allocation(state)
            preview = await pricing.preview_deposit(state, self.shares.total_supply, assets)
            if preview.amount == 0:
                raise InvalidAmountError("Deposit would mint zero shares")

            await state.venues.basket_manager.transfer_in(caller, assets)
            self.shares.mint(receiver, preview.amount)
            await orchestrator.after_deposit(state)

        self.logger.info(
            f"Deposit {assets} -> {preview.amount} shares (slippage {preview.slippage})"
        )
        return preview.amount

    async def mint(self, shares: int, receiver: str, *, caller: str | None = None) -> int:
        if shares <= 0:
            raise InvalidAmountError("Mint amount must be positive")
        caller = caller or receiver
        async with self._transaction("mint") as state:
            self._ensure_fully_hedged(state)
            await orchestrator.before_share_allocation(state)
            preview = await pricing.preview_mint(state, self.shares.total_supply, shares)

            cap = await pricing.max_deposit(state)
            if preview.amount > cap:
                raise CapacityError(preview.amount, cap)

            await state.venues.basket_manager.transfer_in(caller, preview.amount)
            self.shares.mint(receiver, shares)
            await orchestrator.after_deposit(state)

        self.logger.info(
            f"Mint {shares} shares for {preview.amount} (slippage {preview.slippage})"
        )
        return preview.amount

    async def withdraw(
        self, assets: int, receiver: str, owner: str, *, caller: str | None = None
    ) -> int:
        if assets <= 0:
            raise InvalidAmountError("Withdraw amount must be positive")
        caller = caller or owner
        async with self._transaction("withdraw") as state:
            self._ensure_fully_hedged(state)
            await orchestrator.before_share_allocation(state)
            preview = await pricing.preview_withdraw(
                state, self.shares.total_supply, assets
            )
            self._burn(owner, caller, preview.amount)
            await orchestrator.before_withdraw(state, assets)
            await state.venues.basket_manager.transfer_out(receiver, assets)

        self.logger.info(
            f"Withdraw {assets} for {preview.amount} shares (slippage {preview.slippage})"
        )
        return preview.amount

    async def redeem(
        self, shares: int, receiver: str, owner: str, *, caller: str | None = None
    ) -> int:
        if shares <= 0:
            raise InvalidAmountError("Redeem amount must be positive")
        caller = caller or owner
        async with self._transaction("redeem") as state:
            self._ensure_fully_hedged(state)
            await orchestrator.before_share_allocation(state)
            preview = await pricing.preview_redeem(state, self.shares.total_supply, shares)
            if preview.amount == 0:
                raise InvalidAmountError("Redeem would return zero assets")
            self._burn(owner, caller, shares)
            await orchestrator.before_withdraw(state, preview.amount)
            await state.venues.basket_manager.transfer_out(receiver, preview.amount)

        self.logger.info(
            f"Redeem {shares} shares for {preview.amount} (slippage {preview.slippage})"
        )
        return preview.amount

    def _burn(self, owner: str, caller: str, shares: int) -> None:
        if to_checksum_address(caller) != to_checksum_address(owner):
            self.shares.spend_allowance(owner, caller, shares)
        self.shares.burn(owner, shares)

    # ─────────────────────────────────────────────────────────────────────
    # KEEPER / ADMIN
    # ─────────────────────────────────────────────────────────────────────

    async def rebalance(self, caller: str) -> OptimalBorrows:
        async with self._transaction("rebalance") as state:
            result = await orchestrator.rebalance(state, caller, self.clock())
        self.logger.info(
            f"Rebalanced to btc={result.btc} eth={result.eth} "
            f"senior={result.target_senior_borrow} partial={result.is_partial}"
        )
        return result

    async def configure(self, **changes: Any) -> VaultConfig:
        async with self._lock:
            new_config = self._state.config.updated(**changes)
            lending = self._state.venues.lending_market
            liq = await lending.get_reserve_liquidation_threshold(
                new_config.assets.stable.address
            )
            if new_config.target_health_factor_bps <= liq:
                raise ConfigurationError(
                    f"target health factor {new_config.target_health_factor_bps} "
                    f"must exceed liquidation threshold {liq}"
                )
            self._state.config = new_config
        self.logger.info(f"Config updated: {sorted(changes)}")
        return new_config

    # ─────────────────────────────────────────────────────────────────────
    # VIEWS
    # ─────────────────────────────────────────────────────────────────────

    async def total_assets(self, maximize: bool = False) -> int:
        return await total_assets(self._state, maximize=maximize)

    async def convert_to_shares(self, assets: int) -> int:
        total = await self.total_assets()
        return pricing.convert_to_shares(assets, total, self.shares.total_supply)

    async def convert_to_assets(self, shares: int) -> int:
        total = await self.total_assets()
        return pricing.convert_to_assets(shares, total, self.shares.total_supply)

    async def preview_deposit(self, assets: int) -> Preview:
        return await pricing.preview_deposit(self._state, self.shares.total_supply, assets)

    async def preview_mint(self, shares: int) -> Preview:
        return await pricing.preview_mint(self._state, self.shares.total_supply, shares)

    async def preview_withdraw(self, assets: int) -> Preview:
        return await pricing.preview_withdraw(self._state, self.shares.total_supply, assets)

    async def preview_redeem(self, shares: int) -> Preview:
        return await pricing.preview_redeem(self._state, self.shares.total_supply, shares)

    async def max_deposit(self, receiver: str | None = None) -> int:
        return await pricing.max_deposit(self._state)

    async def max_mint(self, receiver: str | None = None) -> int:
        cap = await pricing.max_deposit(self._state)
        supply = self.shares.total_supply
        if cap == 0 or supply == 0:
            return cap
        total = await self.total_assets()
        if total == 0:
            return 0
        # Saturates: an unbounded cap converts to more shares than uint256 holds
        return min(MAX_UINT256, cap * supply // total)

    async def max_withdraw(self, owner: str) -> int:
        if self.is_partially_hedged:
            return 0
        total = await self.total_assets()
        return pricing.convert_to_assets(
            self.shares.balance_of(owner), total, self.shares.total_supply, Rounding.DOWN
        )

    async def max_redeem(self, owner: str) -> int:
        if self.is_partially_hedged:
            return 0
        return self.shares.balance_of(owner)

    async def check_rebalance_gate(self) -> RebalanceGate:
        return await orchestrator.check_rebalance_gate(self._state, self.clock())

    async def status(self) -> VaultStatus:
        state = self._state
        venues = state.venues
        btc, eth = await get_current_borrows(state)
        return VaultStatus(
            total_assets=await total_assets(state),
            total_shares=self.shares.total_supply,
            basket_held=await venues.basket_manager.balance_of(state.address),
            current_btc_borrow=btc,
            current_eth_borrow=eth,
            borrow_value=await get_borrow_value(state, btc, eth),
            stable_deposited=state.stable_deposited,
            unhedged_basket_value=state.unhedged_basket_value,
            collateral_balance=await get_collateral_balance(state),
            senior_borrowed=await get_senior_borrowed(state),
            health_factor=await venues.lending_market.get_health_factor(state.address),
            collateral_residual=await check_collateral_invariant(state),
            is_partially_hedged=state.is_partially_hedged,
            last_rebalance_timestamp=state.last_rebalance_timestamp,
            protocol_fee_accrued=state.protocol_fee_accrued,
            protocol_reward_token_accrued=state.protocol_reward_token_accrued,
            senior_tranche_unconverted_reward=state.senior_tranche_unconverted_reward,
            extra={"phase": state.phase.name, "loan_nonce": state.loan_nonce},
        )
