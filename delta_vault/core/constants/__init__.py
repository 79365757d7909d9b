from .base import (
    MAX_BPS,
    MAX_INT256,
    MAX_UINT256,
    MIN_INT256,
    PRICE_PRECISION,
    RATE_PRECISION,
    WAD,
)

__all__ = [
    "MAX_BPS",
    "MAX_INT256",
    "MAX_UINT256",
    "MIN_INT256",
    "PRICE_PRECISION",
    "RATE_PRECISION",
    "WAD",
]
