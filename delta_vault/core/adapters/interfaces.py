"""Narrow async interfaces of the venues the vault consumes.

Each collaborator acts on behalf of the vault account it was constructed for;
explicit ``account`` arguments are reads about any account.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from delta_vault.core.utils.swap_path import SwapPath


@dataclass(frozen=True)
class RewardClaim:
    reward_amount: int  # reward token (ETH-like) base units
    escrowed_amount: int  # escrowed/vesting reward units


@runtime_checkable
class Transactional(Protocol):
    def snapshot(self) -> Any: ...

    def restore(self, snap: Any) -> None: ...


class LendingMarket(Protocol):
    async def supply(self, asset: str, amount: int) -> None: ...

    async def withdraw(self, asset: str, amount: int, to: str) -> int: ...

    async def borrow(
        self, asset: str, amount: int, mode: int, on_behalf: str
    ) -> None: ...

    async def repay(self, asset: str, amount: int) -> int: ...

    async def get_reserve_liquidation_threshold(self, asset: str) -> int:
        """Liquidation threshold of ``asset`` as collateral, in bps."""
        ...

    async def get_health_factor(self, user: str) -> int:
        """Health factor of ``user`` scaled by 1e18."""
        ...

    async def collateral_balance(self, account: str, asset: str) -> int: ...

    async def debt_balance(self, account: str, asset: str) -> int: ...


class BasketManager(Protocol):
    async def get_total_value(self, maximize: bool) -> int:
        """Assets under management, USD scaled by PRICE_PRECISION."""
        ...

    async def get_underlying_reserve(self, asset: str) -> int: ...

    async def get_min_price(self, asset: str) -> int: ...

    async def get_max_price(self, asset: str) -> int: ...

    async def total_supply(self) -> int: ...

    async def balance_of(self, account: str) -> int: ...

    async def mint_basket_token(self, asset: str, amount: int, min_out: int) -> int: ...

    async def redeem_basket_token(
        self, asset: str, basket_amount: int, min_out: int
    ) -> int: ...

    async def transfer_in(self, owner: str, amount: int) -> None: ...

    async def transfer_out(self, receiver: str, amount: int) -> None: ...

    async def claim_rewards(self) -> RewardClaim: ...


class SwapVenue(Protocol):
    async def swap_exact_in(
        self, path: SwapPath, amount_in: int, min_amount_out: int
    ) -> int: ...

    async def swap_exact_out(
        self, path: SwapPath, amount_out: int, max_amount_in: int
    ) -> int: ...

    async def quote_exact_in(self, path: SwapPath, amount_in: int) -> int: ...

    async def quote_exact_out(self, path: SwapPath, amount_out: int) -> int: ...


class LoanReceiver(Protocol):
    async def on_loan_received(
        self,
        caller: str,
        assets: Sequence[str],
        amounts: Sequence[int],
        fees: Sequence[int],
        data: bytes,
    ) -> list[int]:
        """Run the borrowed funds and return the amount handed back per asset."""
        ...


class LoanProvider(Protocol):
    address: str | None

    async def request_loan(
        self,
        receiver: LoanReceiver,
        assets: Sequence[str],
        amounts: Sequence[int],
        data: bytes,
    ) -> None: ...


class SeniorTranche(Protocol):
    async def borrow(self, amount: int) -> None: ...

    async def repay(self, amount: int) -> None: ...

    async def available_borrow(self, borrower: str) -> int: ...

    async def borrowed(self, borrower: str) -> int: ...

    async def get_reward_split_rate(self) -> int:
        """Senior share of harvested rewards, scaled by RATE_PRECISION."""
        ...

    async def deposit_rewards(self, amount: int) -> None: ...


class TraderOverrideOracle(Protocol):
    async def get_btc_override(self) -> int: ...

    async def get_eth_override(self) -> int: ...
