import pytest
from eth_utils import to_checksum_address

from delta_vault.core.utils.swap_path import (
    SwapPath,
    address_key,
    is_sorted_unique,
    sort_addresses,
)

BTC = "0x0000000000000000000000000000000000000b01"
ETH = "0x0000000000000000000000000000000000000c01"
USD = "0x0000000000000000000000000000000000000a01"


def test_build_and_segments():
    path = SwapPath.build(BTC, 500, ETH, 3000, USD)
    assert path.token_in == to_checksum_address(BTC)
    assert path.token_out == to_checksum_address(USD)
    assert path.segments() == [
        (to_checksum_address(BTC), 500, to_checksum_address(ETH)),
        (to_checksum_address(ETH), 3000, to_checksum_address(USD)),
    ]


def test_reversed_flips_tokens_and_fees():
    path = SwapPath.build(BTC, 500, ETH, 3000, USD).reversed()
    assert path.token_in == to_checksum_address(USD)
    assert path.fees == (3000, 500)


def test_packed_encoding_layout():
    path = SwapPath.build(BTC, 500, ETH, 3000, USD)
    raw = path.encode()
    assert len(raw) == 20 + 3 + 20 + 3 + 20
    assert raw[20:23] == (500).to_bytes(3, "big")
    assert SwapPath.decode(raw) == path


def test_invalid_paths_rejected():
    with pytest.raises(ValueError):
        SwapPath.build(BTC)
    with pytest.raises(ValueError):
        SwapPath.build(BTC, 1_000_000, ETH)
    with pytest.raises(ValueError):
        SwapPath.decode(b"\x00" * 21)


def test_address_ordering():
    assert address_key(USD) < address_key(BTC) < address_key(ETH)
    assert sort_addresses([ETH, USD, BTC]) == [
        to_checksum_address(a) for a in (USD, BTC, ETH)
    ]
    assert is_sorted_unique([USD, BTC, ETH])
    assert not is_sorted_unique([BTC, BTC])
    assert not is_sorted_unique([ETH, BTC])
