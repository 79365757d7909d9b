from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_utils import to_checksum_address

from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.adapters.interfaces import LoanReceiver
from delta_vault.core.errors import VenueError
from delta_vault.core.utils.fixed_point import Rounding, apply_bps
from delta_vault.core.utils.swap_path import is_sorted_unique


class FlashLoanAdapter(BaseAdapter):
    """Balancer-style flash loan vault lending its ledger balances to ``account``."""

    adapter_type: str = "FLASH_LOAN"

    def __init__(
        self, config: dict[str, Any] | None = None, *, ledger: TokenLedgerAdapter
    ):
        super().__init__("flash_loan_adapter", config)
        self.ledger = ledger
        self.account = to_checksum_address(self.config["account"])
        self.fee_bps = int(self.config.get("fee_bps", 0))
        self.last_loan: dict[str, Any] | None = None
        self._active = False

    async def request_loan(
        self,
        receiver: LoanReceiver,
        assets: Sequence[str],
        amounts: Sequence[int],
        data: bytes,
    ) -> None:
        if self._active:
            raise VenueError("Reentrant flash loan")
        if len(assets) != len(amounts):
            raise VenueError("Assets and amounts differ in length")
        if not is_sorted_unique(assets):
            raise VenueError("Loan assets must be sorted and unique")

        assets = [to_checksum_address(a) for a in assets]
        fees = [apply_bps(a, self.fee_bps, Rounding.UP) for a in amounts]
        self._active = True
        try:
            for asset, amount in zip(assets, amounts, strict=True):
                self.ledger.transfer(asset, self.address, self.account, amount)

            repayments = await receiver.on_loan_received(
                self.address, list(assets), list(amounts), fees, data
            )
            if len(repayments) != len(assets):
                raise VenueError("Receiver returned a malformed repayment list")
            for asset, amount, fee, paid in zip(
                assets, amounts, fees, repayments, strict=True
            ):
                if paid < amount + fee:
                    raise VenueError(
                        f"Loan of {amount} {asset} not repaid: {paid} < {amount + fee}"
                    )
                self.ledger.transfer(asset, self.account, self.address, paid)
        finally:
            self._active = False

        self.last_loan = {"assets": assets, "amounts": list(amounts), "fees": fees}
        self.logger.debug(f"Flash loan settled: {assets} {list(amounts)}")
