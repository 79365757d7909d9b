from __future__ import annotations

from dataclasses import dataclass

from delta_vault.core.constants.base import RATE_PRECISION


@dataclass(frozen=True)
class RateCurve:
    """Two-slope utilization curve, all rates scaled by ``RATE_PRECISION``."""

    optimal_utilization: int
    base_rate: int
    slope1: int
    slope2: int


def utilization_rate(borrowed: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(RATE_PRECISION, borrowed * RATE_PRECISION // total)


def curve_rate(curve: RateCurve, utilization: int) -> int:
    """
    Rate at ``utilization`` below the kink: ``base + u * slope1 / optimal``.
    Above it: ``base + slope1 + slope2 * excess``, where excess is the share of
    the post-kink range already used. Capped at 100%.
    """
    optimal = curve.optimal_utilization
    if optimal <= 0 or utilization > optimal:
        excess_range = RATE_PRECISION - optimal
        excess = (
            (utilization - optimal) * RATE_PRECISION // excess_range
            if excess_range > 0
            else RATE_PRECISION
        )
        rate = curve.base_rate + curve.slope1 + curve.slope2 * excess // RATE_PRECISION
    else:
        rate = curve.base_rate + utilization * curve.slope1 // optimal
    return min(rate, RATE_PRECISION)

