from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from delta_vault.adapters.price_feed_adapter.adapter import PriceFeedAdapter
from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.constants.base import FEE_TIER_DENOMINATOR, MAX_BPS
from delta_vault.core.errors import VenueError
from delta_vault.core.utils.fixed_point import Rounding, mul_div
from delta_vault.core.utils.swap_path import SwapPath


class SwapAdapter(BaseAdapter):
    """Uniswap-style router priced off the oracle.

    Each hop pays its pool fee and ``price_impact_bps``; liquidity is the
    router's ledger balance.
    """

    adapter_type: str = "SWAP"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        ledger: TokenLedgerAdapter,
        price_feed: PriceFeedAdapter,
    ):
        super().__init__("swap_adapter", config)
        self.ledger = ledger
        self.price_feed = price_feed
        self.account = to_checksum_address(self.config["account"])
        self.price_impact_bps = int(self.config.get("price_impact_bps", 0))
        self.swaps: list[dict[str, Any]] = []

    def _hop_out(self, token_in: str, fee: int, token_out: str, amount_in: int) -> int:
        usd = mul_div(
            amount_in,
            self.price_feed.get_price(token_in),
            10 ** self.ledger.decimals(token_in),
        )
        usd = mul_div(usd, FEE_TIER_DENOMINATOR - fee, FEE_TIER_DENOMINATOR)
        usd = mul_div(usd, MAX_BPS - self.price_impact_bps, MAX_BPS)
        return mul_div(
            usd, 10 ** self.ledger.decimals(token_out), self.price_feed.get_price(token_out)
        )

    def _hop_in(self, token_in: str, fee: int, token_out: str, amount_out: int) -> int:
        usd = mul_div(
            amount_out,
            self.price_feed.get_price(token_out),
            10 ** self.ledger.decimals(token_out),
            Rounding.UP,
        )
        usd = mul_div(usd, MAX_BPS, MAX_BPS - self.price_impact_bps, Rounding.UP)
        usd = mul_div(usd, FEE_TIER_DENOMINATOR, FEE_TIER_DENOMINATOR - fee, Rounding.UP)
        return mul_div(
            usd,
            10 ** self.ledger.decimals(token_in),
            self.price_feed.get_price(token_in),
            Rounding.UP,
        )

    async def quote_exact_in(self, path: SwapPath, amount_in: int) -> int:
        amount = amount_in
        for token_in, fee, token_out in path.segments():
            amount = self._hop_out(token_in, fee, token_out, amount)
        return amount

    async def quote_exact_out(self, path: SwapPath, amount_out: int) -> int:
        amount = amount_out
        for token_in, fee, token_out in reversed(path.segments()):
            amount = self._hop_in(token_in, fee, token_out, amount)
        return amount

    def _settle(self, path: SwapPath, amount_in: int, amount_out: int) -> None:
        self.ledger.transfer(path.token_in, self.account, self.address, amount_in)
        self.ledger.transfer(path.token_out, self.address, self.account, amount_out)
        self.swaps.append(
            {
                "path": path.encode().hex(),
                "amount_in": amount_in,
                "amount_out": amount_out,
            }
        )

    async def swap_exact_in(
        self, path: SwapPath, amount_in: int, min_amount_out: int
    ) -> int:
        out = await self.quote_exact_in(path, amount_in)
        if out < min_amount_out:
            raise VenueError(f"Too little received: {out} < {min_amount_out}")
        self._settle(path, amount_in, out)
        return out

    async def swap_exact_out(
        self, path: SwapPath, amount_out: int, max_amount_in: int
    ) -> int:
        amount_in = await self.quote_exact_out(path, amount_out)
        if amount_in > max_amount_in:
            raise VenueError(f"Too much requested: {amount_in} > {max_amount_in}")
        self._settle(path, amount_in, amount_out)
        return amount_in
