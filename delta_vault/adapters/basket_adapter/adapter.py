from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from delta_vault.adapters.price_feed_adapter.adapter import PriceFeedAdapter
from delta_vault.adapters.token_ledger_adapter.adapter import TokenLedgerAdapter
from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.adapters.interfaces import RewardClaim
from delta_vault.core.constants.base import PRICE_PRECISION
from delta_vault.core.errors import VenueError
from delta_vault.core.utils.fixed_point import mul_div, sub_bps


class BasketAdapter(BaseAdapter):
    """GLP-style basket: a pool of reserve tokens backing a basket token.

    The pool's reserves are its ledger balances at ``address``; minting prices
    deposits at the min price against max AUM, redeeming at the max price
    against min AUM.
    """

    adapter_type: str = "BASKET"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        *,
        ledger: TokenLedgerAdapter,
        price_feed: PriceFeedAdapter,
    ):
        super().__init__("basket_adapter", config)
        self.ledger = ledger
        self.price_feed = price_feed
        self.account = to_checksum_address(self.config["account"])
        self.basket_token = to_checksum_address(self.config["basket_token"])
        self.reward_token = to_checksum_address(self.config["reward_token"])
        self.reserve_tokens = [
            to_checksum_address(t) for t in self.config.get("reserve_tokens", [])
        ]
        self.mint_fee_bps = int(self.config.get("mint_fee_bps", 0))
        self.redeem_fee_bps = int(self.config.get("redeem_fee_bps", 0))
        self.pending_rewards: dict[str, int] = {}
        self.pending_escrow: dict[str, int] = {}
        self.escrowed: dict[str, int] = {}

    def _require_reserve(self, asset: str) -> str:
        addr = to_checksum_address(asset)
        if addr not in self.reserve_tokens:
            raise VenueError(f"{asset} is not a basket reserve token")
        return addr

    def _usd(self, asset: str, amount: int, price: int) -> int:
        return mul_div(amount, price, 10 ** self.ledger.decimals(asset))

    # ─────────────────────────────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────────────────────────────

    async def get_total_value(self, maximize: bool) -> int:
        total = 0
        for token in self.reserve_tokens:
            price = (
                self.price_feed.get_max_price(token)
                if maximize
                else self.price_feed.get_min_price(token)
            )
            total += self._usd(token, self.ledger.balance_of(token, self.address), price)
        return total

    async def get_underlying_reserve(self, asset: str) -> int:
        return self.ledger.balance_of(self._require_reserve(asset), self.address)

    async def get_min_price(self, asset: str) -> int:
        return self.price_feed.get_min_price(asset)

    async def get_max_price(self, asset: str) -> int:
        return self.price_feed.get_max_price(asset)

    async def total_supply(self) -> int:
        return self.ledger.total_supply(self.basket_token)

    async def balance_of(self, account: str) -> int:
        return self.ledger.balance_of(self.basket_token, account)

    # ─────────────────────────────────────────────────────────────────────
    # ACTIONS
    # ─────────────────────────────────────────────────────────────────────

    async def mint_basket_token(self, asset: str, amount: int, min_out: int) -> int:
        asset = self._require_reserve(asset)
        usd = sub_bps(
            self._usd(asset, amount, self.price_feed.get_min_price(asset)),
            self.mint_fee_bps,
        )
        supply = self.ledger.total_supply(self.basket_token)
        aum = await self.get_total_value(True)
        if supply == 0 or aum == 0:
            out = mul_div(usd, 10 ** self.ledger.decimals(self.basket_token), PRICE_PRECISION)
        else:
            out = mul_div(usd, supply, aum)
        if out < min_out:
            raise VenueError(f"Basket minted {out} below minimum {min_out}")
        self.ledger.transfer(asset, self.account, self.address, amount)
        self.ledger.mint(self.basket_token, self.account, out)
        return out

    async def redeem_basket_token(
        self, asset: str, basket_amount: int, min_out: int
    ) -> int:
        asset = self._require_reserve(asset)
        supply = self.ledger.total_supply(self.basket_token)
        if basket_amount > supply:
            raise VenueError(f"Redeem of {basket_amount} exceeds supply {supply}")
        usd = mul_div(basket_amount, await self.get_total_value(False), supply)
        out = sub_bps(
            mul_div(
                usd,
                10 ** self.ledger.decimals(asset),
                self.price_feed.get_max_price(asset),
            ),
            self.redeem_fee_bps,
        )
        if out < min_out:
            raise VenueError(f"Redeemed {out} below minimum {min_out}")
        self.ledger.burn(self.basket_token, self.account, basket_amount)
        self.ledger.transfer(asset, self.address, self.account, out)
        return out

    async def transfer_in(self, owner: str, amount: int) -> None:
        self.ledger.transfer(self.basket_token, owner, self.account, amount)

    async def transfer_out(self, receiver: str, amount: int) -> None:
        self.ledger.transfer(self.basket_token, self.account, receiver, amount)

    def add_rewards(self, reward_amount: int, escrowed_amount: int = 0) -> None:
        self.pending_rewards[self.account] = (
            self.pending_rewards.get(self.account, 0) + reward_amount
        )
        self.pending_escrow[self.account] = (
            self.pending_escrow.get(self.account, 0) + escrowed_amount
        )

    async def claim_rewards(self) -> RewardClaim:
        reward = self.pending_rewards.pop(self.account, 0)
        escrow = self.pending_escrow.pop(self.account, 0)
        if reward:
            self.ledger.mint(self.reward_token, self.account, reward)
        if escrow:
            self.escrowed[self.account] = self.escrowed.get(self.account, 0) + escrow
        return RewardClaim(reward_amount=reward, escrowed_amount=escrow)
