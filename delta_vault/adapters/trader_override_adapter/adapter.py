from __future__ import annotations

from typing import Any

from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.utils.fixed_point import to_int256


class TraderOverrideAdapter(BaseAdapter):
    """Signed open-interest adjustments per volatile asset, in token units."""

    adapter_type: str = "TRADER_OVERRIDE"

    def __init__(self, config: dict[str, Any] | None = None):
        super().__init__("trader_override_adapter", config)
        self.btc_override = to_int256(int(self.config.get("btc_override", 0)))
        self.eth_override = to_int256(int(self.config.get("eth_override", 0)))

    def set_overrides(self, btc: int | None = None, eth: int | None = None) -> None:
        if btc is not None:
            self.btc_override = to_int256(btc)
        if eth is not None:
            self.eth_override = to_int256(eth)

    async def get_btc_override(self) -> int:
        return self.btc_override

    async def get_eth_override(self) -> int:
        return self.eth_override
