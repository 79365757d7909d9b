from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TypedDict

from loguru import logger


class StatusDict(TypedDict):
    portfolio_value: float
    net_deposit: float
    strategy_status: Any


StatusTuple = tuple[bool, str]


class StrategyConfig(TypedDict, total=False):
    keeper: str
    vault: dict[str, Any]


class Strategy(ABC):
    name: str | None = None

    def __init__(
        self,
        config: StrategyConfig | dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        self.logger = logger.bind(strategy=self.__class__.__name__)
        self.config: StrategyConfig | dict[str, Any] = config or {}

    async def setup(self) -> None:
        pass

    @abstractmethod
    async def deposit(self, **kwargs) -> StatusTuple:
        pass

    async def withdraw(self, **kwargs) -> StatusTuple:
        return (True, "Withdrawal complete")

    @abstractmethod
    async def update(self) -> StatusTuple:
        pass

    @abstractmethod
    async def exit(self, **kwargs) -> StatusTuple:
        pass

    @abstractmethod
    async def _status(self) -> StatusDict:
        pass

    async def status(self) -> StatusDict:
        return await self._status()
