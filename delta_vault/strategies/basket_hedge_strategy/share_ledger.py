from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from delta_vault.core.errors import AuthorizationError, InvalidAmountError
from delta_vault.core.utils.fixed_point import checked_sub, to_uint256


class ShareLedger:
    """Vault share balances and allowances."""

    def __init__(self) -> None:
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}
        self.total_supply = 0

    def balance_of(self, account: str) -> int:
        return self.balances.get(to_checksum_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(
            (to_checksum_address(owner), to_checksum_address(spender)), 0
        )

    def mint(self, to: str, amount: int) -> None:
        to = to_checksum_address(to)
        self.total_supply = to_uint256(self.total_supply + amount)
        self.balances[to] = self.balances.get(to, 0) + amount

    def burn(self, owner: str, amount: int) -> None:
        owner = to_checksum_address(owner)
        balance = self.balances.get(owner, 0)
        if amount > balance:
            raise InvalidAmountError(
                f"Burn of {amount} shares exceeds balance {balance} of {owner}"
            )
        self.balances[owner] = balance - amount
        self.total_supply = checked_sub(self.total_supply, amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        key = (to_checksum_address(owner), to_checksum_address(spender))
        self.allowances[key] = to_uint256(amount)

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        key = (to_checksum_address(owner), to_checksum_address(spender))
        current = self.allowances.get(key, 0)
        if amount > current:
            raise AuthorizationError(
                spender, f"Allowance {current} of {spender} below {amount}"
            )
        self.allowances[key] = current - amount

    def transfer(self, sender: str, receiver: str, amount: int) -> None:
        self.burn(sender, amount)
        self.mint(receiver, amount)

    def snapshot(self) -> dict[str, Any]:
        return {
            "balances": dict(self.balances),
            "allowances": dict(self.allowances),
            "total_supply": self.total_supply,
        }

    def restore(self, snap: dict[str, Any]) -> None:
        self.balances = dict(snap["balances"])
        self.allowances = dict(snap["allowances"])
        self.total_supply = snap["total_supply"]
