from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.constants.base import MAX_BPS, MAX_UINT256, RATE_PRECISION
from delta_vault.core.errors import VenueError
from delta_vault.core.utils.fixed_point import mul_div
from delta_vault.core.utils.interest import RateCurve, curve_rate, utilization_rate


class SeniorTrancheAdapter(BaseAdapter):
    """Stable-asset lending pool backing the junior vault.

    Its cash is the ledger balance at ``address``. The share of rewards it
    takes follows a utilization curve.
    """

    adapter_type: str = "SENIOR_TRANCHE"

    def __init__(
        self, config: dict[str, Any] | None = None, *, ledger: TokenLedgerAdapter
    ):
        super().__init__("senior_tranche_adapter", config)
        self.ledger = ledger
        self.account = to_checksum_address(self.config["account"])
        self.asset = to_checksum_address(self.config["asset"])
        self.borrow_cap = int(self.config.get("borrow_cap", MAX_UINT256))
        self.max_utilization_bps = int(self.config.get("max_utilization_bps", MAX_BPS))
        curve = self.config.get("reward_curve") or {}
        self.reward_curve = RateCurve(
            optimal_utilization=int(
                curve.get("optimal_utilization", RATE_PRECISION * 9 // 10)
            ),
            base_rate=int(curve.get("base_rate", RATE_PRECISION // 10)),
            slope1=int(curve.get("slope1", RATE_PRECISION // 5)),
            slope2=int(curve.get("slope2", RATE_PRECISION // 2)),
        )
        self.borrows: dict[str, int] = {}
        self.rewards_received = 0

    def _cash(self) -> int:
        return self.ledger.balance_of(self.asset, self.address)

    def _total_borrowed(self) -> int:
        return sum(self.borrows.values())

    def utilization(self) -> int:
        borrowed = self._total_borrowed()
        return utilization_rate(borrowed, borrowed + self._cash())

    async def available_borrow(self, borrower: str) -> int:
        borrowed = self.borrows.get(to_checksum_address(borrower), 0)
        total = self._total_borrowed() + self._cash()
        by_utilization = (
            mul_div(total, self.max_utilization_bps, MAX_BPS) - self._total_borrowed()
        )
        by_cap = self.borrow_cap - borrowed
        return max(0, min(by_utilization, by_cap, self._cash()))

    async def borrowed(self, borrower: str) -> int:
        return self.borrows.get(to_checksum_address(borrower), 0)

    async def borrow(self, amount: int) -> None:
        available = await self.available_borrow(self.account)
        if amount > available:
            raise VenueError(f"Senior borrow {amount} exceeds available {available}")
        self.ledger.transfer(self.asset, self.address, self.account, amount)
        self.borrows[self.account] = self.borrows.get(self.account, 0) + amount

    async def repay(self, amount: int) -> None:
        owed = self.borrows.get(self.account, 0)
        if amount > owed:
            raise VenueError(f"Senior repay {amount} exceeds debt {owed}")
        self.ledger.transfer(self.asset, self.account, self.address, amount)
        self.borrows[self.account] = owed - amount

    async def get_reward_split_rate(self) -> int:
        return curve_rate(self.reward_curve, self.utilization())

    async def deposit_rewards(self, amount: int) -> None:
        self.ledger.transfer(self.asset, self.account, self.address, amount)
        self.rewards_received += amount
