#!/usr/bin/env python3

# Allow running as a script: `python delta_vault/run_vault.py ...`
if __name__ == "__main__" and __package__ is None:
    import sys
    from pathlib import Path

    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio
import dataclasses
import json
import sys
from typing import Any

from loguru import logger

from delta_vault.core.config import (
    CONFIG,
    get_sandbox_section,
    get_vault_section,
    load_config,
)
from delta_vault.core.utils.sandbox import USER_ADDRESS, SandboxWorld, build_sandbox
from delta_vault.core.utils.units import to_erc20_raw
from delta_vault.strategies.basket_hedge_strategy.strategy import BasketHedgeStrategy


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, tuple):
        return list(value)
    return value


async def _preview(world: SandboxWorld, amount: float) -> dict[str, Any]:
    assets = to_erc20_raw(amount, world.config.assets.basket.decimals)
    deposit = await world.vault.preview_deposit(assets)
    shares = await world.vault.convert_to_shares(assets)
    return {
        "assets": assets,
        "deposit_shares": deposit.amount,
        "deposit_slippage": deposit.slippage,
        "max_deposit": await world.vault.max_deposit(),
        "shares_at_nav": shares,
    }


async def run_vault(action: str = "status", **kw) -> Any:
    world = build_sandbox(get_sandbox_section(), get_vault_section())
    strategy = BasketHedgeStrategy(
        dict(CONFIG.get("strategy", {})),
        vault=world.vault,
        account=kw.get("account") or USER_ADDRESS,
    )
    await strategy.setup()

    # The sandbox starts empty; seed a position so keeper actions have something to act on
    if seed := kw.get("seed_deposit"):
        ok, msg = await strategy.deposit(main_token_amount=seed)
        logger.info(f"Seed deposit: {msg}")
        if not ok:
            return (False, msg)
    if advance := kw.get("advance_s"):
        world.clock.advance(int(advance))

    if action == "status":
        return await strategy.status()
    if action == "preview":
        return await _preview(world, kw.get("amount") or 0.0)
    if action == "gate":
        gate = await world.vault.check_rebalance_gate()
        return {"eligible": gate.eligible, "reasons": gate.reasons()}
    if action == "deposit":
        return await strategy.deposit(main_token_amount=kw.get("amount") or 0.0)
    if action == "withdraw":
        return await strategy.withdraw(amount=kw.get("amount"))
    if action == "update":
        return await strategy.update()
    if action == "exit":
        return await strategy.exit()
    raise ValueError(f"Unknown action: {action}")


def main():
    p = argparse.ArgumentParser(
        description="Drive a basket hedge vault against the in-memory sandbox."
    )
    p.add_argument(
        "--action",
        default="status",
        choices=["status", "preview", "gate", "deposit", "withdraw", "update", "exit"],
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to config JSON (default: config.json in project root)",
    )
    p.add_argument("--amount", type=float, help="Basket amount in whole tokens")
    p.add_argument(
        "--seed-deposit",
        type=float,
        dest="seed_deposit",
        default=None,
        help="Deposit this many basket tokens before running the action",
    )
    p.add_argument(
        "--advance-s",
        type=int,
        dest="advance_s",
        default=None,
        help="Advance the sandbox clock by this many seconds before the action",
    )
    p.add_argument("--account", default=None, help="Share owner address")
    p.add_argument("--debug", action="store_true")
    args = p.parse_args()

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.debug else "INFO")

    try:
        load_config(args.config, require_exists=bool(args.config))
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc

    result = asyncio.run(
        run_vault(
            args.action,
            amount=args.amount,
            seed_deposit=args.seed_deposit,
            advance_s=args.advance_s,
            account=args.account,
        )
    )
    result = _jsonable(result)
    print(
        json.dumps(result, indent=2, default=str)
        if isinstance(result, dict)
        else f"{args.action}: {result}"
    )


if __name__ == "__main__":
    main()
