from __future__ import annotations

from loguru import logger

from delta_vault.core.constants.base import RATE_PRECISION
from delta_vault.core.utils.fixed_point import apply_bps, mul_div, sub_bps

from .position import path_to_stable
from .types import VaultState
from .valuation import stable_to_basket, token_price_in_stable, token_to_stable


def split_rewards(net_reward: int, split_rate: int) -> tuple[int, int]:
    """Return ``(senior, junior)`` shares of ``net_reward``."""
    senior = mul_div(net_reward, min(split_rate, RATE_PRECISION), RATE_PRECISION)
    return senior, net_reward - senior


async def harvest_fees(state: VaultState) -> None:
    cfg = state.config
    venues = state.venues
    eth = cfg.assets.eth.address

    claim = await venues.basket_manager.claim_rewards()
    if claim.escrowed_amount:
        state.protocol_reward_token_accrued += apply_bps(claim.escrowed_amount, cfg.fee_bps)

    if claim.reward_amount:
        fee = apply_bps(claim.reward_amount, cfg.fee_bps)
        state.protocol_fee_accrued += fee

        rate = await venues.senior_tranche.get_reward_split_rate()
        senior, junior = split_rewards(claim.reward_amount - fee, rate)
        if junior:
            eth_px = await token_price_in_stable(state, eth, maximize=False)
            expected = await stable_to_basket(
                state, token_to_stable(junior, eth_px), maximize=True
            )
            await venues.basket_manager.mint_basket_token(
                eth, junior, sub_bps(expected, cfg.slippage_threshold_basket_bps)
            )
        state.senior_tranche_unconverted_reward += senior
        logger.info(
            f"Harvested {claim.reward_amount} reward: fee={fee} senior={senior} junior={junior}"
        )

    await convert_senior_rewards(state)


async def convert_senior_rewards(state: VaultState) -> int:
    """Swap the senior share to stable and deliver it once above the conversion threshold."""
    cfg = state.config
    pending = state.senior_tranche_unconverted_reward
    if pending == 0 or pending <= cfg.reward_conversion_threshold:
        return 0

    eth = cfg.assets.eth.address
    eth_px = await token_price_in_stable(state, eth, maximize=False)
    min_out = sub_bps(token_to_stable(pending, eth_px), cfg.slippage_threshold_eth_bps)
    out = await state.venues.swap_venue.swap_exact_in(
        path_to_stable(cfg, eth), pending, min_out
    )
    await state.venues.senior_tranche.deposit_rewards(out)
    state.senior_tranche_unconverted_reward = 0
    logger.info(f"Delivered {out} stable of rewards to senior tranche")
    return out
