from __future__ import annotations

from decimal import Decimal
from typing import Any

from eth_utils import to_checksum_address

from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.constants.base import MAX_BPS
from delta_vault.core.errors import VenueError
from delta_vault.core.utils.fixed_point import Rounding, apply_bps
from delta_vault.core.utils.units import price_to_usd, usd_to_price


class PriceFeedAdapter(BaseAdapter):
    """Oracle prices, USD per whole token scaled by PRICE_PRECISION.

    Min/max prices sit ``spread_bps`` below/above the reference price.
    """

    adapter_type: str = "PRICE_FEED"

    def __init__(self, config: dict[str, Any] | None = None):
        super().__init__("price_feed_adapter", config)
        self.spread_bps: int = int(self.config.get("spread_bps", 0))
        self.prices: dict[str, int] = {}
        for token, usd in (self.config.get("prices_usd") or {}).items():
            self.set_price_usd(token, usd)

    def set_price(self, token: str, price: int) -> None:
        if price <= 0:
            raise VenueError(f"Price must be positive, got {price}")
        self.prices[to_checksum_address(token)] = int(price)

    def set_price_usd(self, token: str, usd: str | float | Decimal) -> None:
        self.set_price(token, usd_to_price(usd))

    def get_price(self, token: str) -> int:
        addr = to_checksum_address(token)
        if addr not in self.prices:
            raise VenueError(f"No price for {token}")
        return self.prices[addr]

    def get_price_usd(self, token: str) -> Decimal:
        return price_to_usd(self.get_price(token))

    def get_min_price(self, token: str) -> int:
        return apply_bps(self.get_price(token), MAX_BPS - self.spread_bps)

    def get_max_price(self, token: str) -> int:
        return apply_bps(self.get_price(token), MAX_BPS + self.spread_bps, Rounding.UP)
