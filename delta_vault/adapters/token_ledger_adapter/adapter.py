from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.errors import VenueError


class TokenLedgerAdapter(BaseAdapter):
    """Token balances shared by every sandbox venue."""

    adapter_type: str = "TOKEN_LEDGER"

    def __init__(self, config: dict[str, Any] | None = None):
        super().__init__("token_ledger_adapter", config)
        self.tokens: dict[str, dict[str, Any]] = {}
        self.balances: dict[tuple[str, str], int] = {}
        self.supplies: dict[str, int] = {}

    def register_token(self, address: str, symbol: str, decimals: int) -> str:
        addr = to_checksum_address(address)
        self.tokens[addr] = {"symbol": symbol, "decimals": int(decimals)}
        self.supplies.setdefault(addr, 0)
        return addr

    def _token(self, token: str) -> str:
        addr = to_checksum_address(token)
        if addr not in self.tokens:
            raise VenueError(f"Unknown token {token}")
        return addr

    def decimals(self, token: str) -> int:
        return self.tokens[self._token(token)]["decimals"]

    def symbol(self, token: str) -> str:
        return self.tokens[self._token(token)]["symbol"]

    def balance_of(self, token: str, account: str) -> int:
        return self.balances.get((self._token(token), to_checksum_address(account)), 0)

    def total_supply(self, token: str) -> int:
        return self.supplies[self._token(token)]

    def mint(self, token: str, account: str, amount: int) -> None:
        if amount < 0:
            raise VenueError(f"Negative mint {amount}")
        key = (self._token(token), to_checksum_address(account))
        self.balances[key] = self.balances.get(key, 0) + amount
        self.supplies[key[0]] += amount

    def burn(self, token: str, account: str, amount: int) -> None:
        key = (self._token(token), to_checksum_address(account))
        balance = self.balances.get(key, 0)
        if amount < 0 or amount > balance:
            raise VenueError(
                f"Burn of {amount} {self.symbol(token)} exceeds balance {balance}"
            )
        self.balances[key] = balance - amount
        self.supplies[key[0]] -= amount

    def transfer(self, token: str, sender: str, receiver: str, amount: int) -> None:
        if amount == 0:
            return
        src = (self._token(token), to_checksum_address(sender))
        dst = (src[0], to_checksum_address(receiver))
        balance = self.balances.get(src, 0)
        if amount < 0 or amount > balance:
            raise VenueError(
                f"Transfer of {amount} {self.symbol(token)} exceeds balance {balance} of {src[1]}"
            )
        self.balances[src] = balance - amount
        self.balances[dst] = self.balances.get(dst, 0) + amount
