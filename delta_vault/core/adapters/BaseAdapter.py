from __future__ import annotations

import copy
from abc import ABC
from typing import Any

from eth_utils import to_checksum_address
from loguru import logger


class BaseAdapter(ABC):
    adapter_type: str | None = None

    # Attributes excluded from snapshot(); shared collaborators and loggers.
    _snapshot_exclude: tuple[str, ...] = ("logger", "config", "ledger", "price_feed")

    def __init__(self, name: str, config: dict[str, Any] | None = None):
        self.name = name
        self.config = config or {}
        self.logger = logger.bind(adapter=self.__class__.__name__)
        addr = self.config.get("address")
        self.address: str | None = to_checksum_address(addr) if addr else None

    def snapshot(self) -> dict[str, Any]:
        return {
            k: copy.deepcopy(v)
            for k, v in vars(self).items()
            if k not in self._snapshot_exclude
        }

    def restore(self, snap: dict[str, Any]) -> None:
        for k, v in snap.items():
            setattr(self, k, copy.deepcopy(v))

    async def close(self) -> None:
        pass
