from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation

from delta_vault.core.constants.base import PRICE_PRECISION


def _to_decimal(value: str | int | float | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    return Decimal(str(value).strip())


def to_erc20_raw(amount_tokens: str | int | float | Decimal, decimals: int) -> int:
    try:
        amt = _to_decimal(amount_tokens)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid token amount: {amount_tokens}") from exc
    if amt < 0:
        raise ValueError("Amount must be non-negative")
    scale = Decimal(10) ** int(decimals)
    return int((amt * scale).to_integral_value(rounding=ROUND_DOWN))


def from_erc20_raw(amount_raw: int, decimals: int) -> Decimal:
    return Decimal(int(amount_raw)) / (Decimal(10) ** int(decimals))


def usd_to_price(usd_per_token: str | int | float | Decimal) -> int:
    """USD price of one whole token, scaled by ``PRICE_PRECISION``."""
    try:
        px = _to_decimal(usd_per_token)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid price: {usd_per_token}") from exc
    if px < 0:
        raise ValueError("Price must be non-negative")
    return int((px * PRICE_PRECISION).to_integral_value(rounding=ROUND_DOWN))


def price_to_usd(price: int) -> Decimal:
    return Decimal(int(price)) / Decimal(PRICE_PRECISION)
