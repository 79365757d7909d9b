"""Multi-hop swap paths and canonical address ordering."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from eth_utils import to_bytes, to_checksum_address

from delta_vault.core.constants.base import FEE_TIER_DENOMINATOR

_ADDR_LEN = 20
_FEE_LEN = 3


@dataclass(frozen=True)
class SwapPath:
    tokens: tuple[str, ...]
    fees: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.tokens) < 2:
            raise ValueError("swap path needs at least two tokens")
        if len(self.fees) != len(self.tokens) - 1:
            raise ValueError(
                f"swap path has {len(self.tokens)} tokens but {len(self.fees)} fees"
            )
        for fee in self.fees:
            if fee < 0 or fee >= FEE_TIER_DENOMINATOR:
                raise ValueError(f"invalid fee tier {fee}")

    @classmethod
    def build(cls, *hops: str | int) -> SwapPath:
        """``SwapPath.build(token_a, 500, token_b, 3000, token_c)``."""
        tokens = tuple(to_checksum_address(str(h)) for h in hops[0::2])
        fees = tuple(int(h) for h in hops[1::2])
        return cls(tokens=tokens, fees=fees)

    @property
    def token_in(self) -> str:
        return self.tokens[0]

    @property
    def token_out(self) -> str:
        return self.tokens[-1]

    def segments(self) -> list[tuple[str, int, str]]:
        return [
            (self.tokens[i], self.fees[i], self.tokens[i + 1])
            for i in range(len(self.fees))
        ]

    def reversed(self) -> SwapPath:
        return SwapPath(tokens=self.tokens[::-1], fees=self.fees[::-1])

    def encode(self) -> bytes:
        # Uniswap v3 packed path: token(20) | fee(3) | token(20) ...
        out = b""
        for i, token in enumerate(self.tokens):
            out += to_bytes(hexstr=token)
            if i < len(self.fees):
                out += int(self.fees[i]).to_bytes(_FEE_LEN, "big")
        return out

    @classmethod
    def decode(cls, raw: bytes) -> SwapPath:
        step = _ADDR_LEN + _FEE_LEN
        if len(raw) < _ADDR_LEN or (len(raw) - _ADDR_LEN) % step:
            raise ValueError(f"malformed packed path of length {len(raw)}")
        tokens: list[str] = []
        fees: list[int] = []
        pos = 0
        while True:
            tokens.append(to_checksum_address(raw[pos : pos + _ADDR_LEN]))
            pos += _ADDR_LEN
            if pos >= len(raw):
                break
            fees.append(int.from_bytes(raw[pos : pos + _FEE_LEN], "big"))
            pos += _FEE_LEN
        return cls(tokens=tuple(tokens), fees=tuple(fees))


def address_key(address: str) -> int:
    return int(to_checksum_address(address), 16)


def sort_addresses(addresses: Iterable[str]) -> list[str]:
    return sorted((to_checksum_address(a) for a in addresses), key=address_key)


def is_sorted_unique(addresses: Sequence[str]) -> bool:
    keys = [address_key(a) for a in addresses]
    return all(a < b for a, b in zip(keys, keys[1:], strict=False))
