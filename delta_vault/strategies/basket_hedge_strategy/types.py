from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Annotated, Any

from eth_utils import to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from delta_vault.core.adapters.interfaces import (
    BasketManager,
    LendingMarket,
    LoanProvider,
    SeniorTranche,
    SwapVenue,
    TraderOverrideOracle,
    Transactional,
)
from delta_vault.core.constants.base import FEE_TIER_DENOMINATOR, MAX_BPS
from delta_vault.core.errors import ConfigurationError
from delta_vault.core.utils.fixed_point import checked_add_signed, to_uint256

from .constants import (
    DEFAULT_DEPOSIT_CAP,
    DEFAULT_FEE_BPS,
    DEFAULT_REBALANCE_DELTA_THRESHOLD_BPS,
    DEFAULT_REBALANCE_HF_THRESHOLD_BPS,
    DEFAULT_REBALANCE_TIME_THRESHOLD_SECONDS,
    DEFAULT_SLIPPAGE_THRESHOLD_BASKET_BPS,
    DEFAULT_SLIPPAGE_THRESHOLD_SWAP_BTC_BPS,
    DEFAULT_SLIPPAGE_THRESHOLD_SWAP_ETH_BPS,
    DEFAULT_TARGET_HEALTH_FACTOR_BPS,
)

Bps = Annotated[int, Field(ge=0, le=MAX_BPS)]
NonNegative = Annotated[int, Field(ge=0)]
FeeTier = Annotated[int, Field(ge=0, lt=FEE_TIER_DENOMINATOR)]

# ─────────────────────────────────────────────────────────────────────────────
# CONFIGURATION
# ─────────────────────────────────────────────────────────────────────────────


class AssetSpec(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    address: str
    symbol: str
    decimals: int = Field(ge=0, le=36)

    @field_validator("address")
    @classmethod
    def _checksum(cls, v: str) -> str:
        return to_checksum_address(v)


class VaultAssets(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    stable: AssetSpec
    btc: AssetSpec
    eth: AssetSpec
    basket: AssetSpec

    @model_validator(mode="after")
    def _distinct(self) -> VaultAssets:
        addrs = {a.address for a in (self.stable, self.btc, self.eth, self.basket)}
        if len(addrs) != 4:
            raise ValueError("stable, btc, eth and basket assets must be distinct")
        return self

    def spec_for(self, address: str) -> AssetSpec:
        addr = to_checksum_address(address)
        for spec in (self.stable, self.btc, self.eth, self.basket):
            if spec.address == addr:
                return spec
        raise KeyError(f"unknown asset {address}")


class VaultConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    assets: VaultAssets
    keeper: str
    loan_provider: str
    fee_recipient: str | None = None

    # Health factor targets (bps, 10_000 = 1.0)
    target_health_factor_bps: int = Field(
        default=DEFAULT_TARGET_HEALTH_FACTOR_BPS, gt=MAX_BPS
    )
    rebalance_health_factor_threshold_bps: int = Field(
        default=DEFAULT_REBALANCE_HF_THRESHOLD_BPS, ge=MAX_BPS
    )

    # Rebalance gate
    rebalance_time_threshold_seconds: NonNegative = (
        DEFAULT_REBALANCE_TIME_THRESHOLD_SECONDS
    )
    rebalance_delta_threshold_bps: Bps = DEFAULT_REBALANCE_DELTA_THRESHOLD_BPS

    # Execution tolerances
    slippage_threshold_btc_bps: Bps = DEFAULT_SLIPPAGE_THRESHOLD_SWAP_BTC_BPS
    slippage_threshold_eth_bps: Bps = DEFAULT_SLIPPAGE_THRESHOLD_SWAP_ETH_BPS
    slippage_threshold_basket_bps: Bps = DEFAULT_SLIPPAGE_THRESHOLD_BASKET_BPS

    # Stable-unit thresholds; a zero partial threshold disables partial moves
    partial_hedge_threshold_btc: NonNegative = 0
    partial_hedge_threshold_eth: NonNegative = 0
    min_hedge_threshold: NonNegative = 0
    profit_threshold: NonNegative = 0

    # Rewards
    fee_bps: Bps = DEFAULT_FEE_BPS
    reward_conversion_threshold: NonNegative = 0

    deposit_cap: NonNegative = DEFAULT_DEPOSIT_CAP

    fee_tier_btc_eth: FeeTier = 500
    fee_tier_eth_stable: FeeTier = 500

    @field_validator("keeper", "loan_provider", "fee_recipient")
    @classmethod
    def _checksum(cls, v: str | None) -> str | None:
        return to_checksum_address(v) if v else v

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VaultConfig:
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid vault config: {exc}") from exc

    def updated(self, **changes: Any) -> VaultConfig:
        # model_copy skips validation; rebuild instead
        return VaultConfig.from_dict({**self.model_dump(), **changes})

    def swap_slippage_bps(self, asset: str) -> int:
        if to_checksum_address(asset) == self.assets.btc.address:
            return self.slippage_threshold_btc_bps
        return self.slippage_threshold_eth_bps

    def partial_threshold(self, asset: str) -> int:
        if to_checksum_address(asset) == self.assets.btc.address:
            return self.partial_hedge_threshold_btc
        return self.partial_hedge_threshold_eth


# ─────────────────────────────────────────────────────────────────────────────
# COLLABORATORS
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class Venues:
    lending_market: LendingMarket
    basket_manager: BasketManager
    swap_venue: SwapVenue
    loan_provider: LoanProvider
    senior_tranche: SeniorTranche
    trader_oracle: TraderOverrideOracle
    # Shared state behind the venues (e.g. a token ledger) that must roll back with them
    extras: tuple[Any, ...] = ()

    def transactional(self) -> list[Transactional]:
        seen: set[int] = set()
        out: list[Transactional] = []
        for v in (
            self.lending_market,
            self.basket_manager,
            self.swap_venue,
            self.loan_provider,
            self.senior_tranche,
            self.trader_oracle,
            *self.extras,
        ):
            if id(v) in seen or not isinstance(v, Transactional):
                continue
            seen.add(id(v))
            out.append(v)
        return out


# ─────────────────────────────────────────────────────────────────────────────
# VAULT STATE
# ─────────────────────────────────────────────────────────────────────────────


class RebalancePhase(Enum):
    IDLE = auto()
    GATED = auto()
    HARVESTING = auto()
    RECONCILING = auto()
    HEDGING_FULL = auto()
    HEDGING_PARTIAL = auto()


@dataclass(frozen=True)
class LoanTicket:
    nonce: int
    consumed: bool = False


@dataclass
class VaultState:
    address: str
    config: VaultConfig
    venues: Venues

    # Signed: net stable value contributed to the lending market
    stable_deposited: int = 0
    # Basket value parked as stable collateral while hedging capacity is short
    unhedged_basket_value: int = 0

    btc_trader_override: int = 0
    eth_trader_override: int = 0
    cached_btc_reserve: int = 0
    cached_eth_reserve: int = 0

    in_flight_loan: LoanTicket | None = None
    loan_nonce: int = 0

    last_rebalance_timestamp: int = 0
    protocol_fee_accrued: int = 0
    protocol_reward_token_accrued: int = 0
    senior_tranche_unconverted_reward: int = 0

    has_partial_btc_hedge: bool = False
    has_partial_eth_hedge: bool = False
    phase: RebalancePhase = RebalancePhase.IDLE

    @property
    def is_partially_hedged(self) -> bool:
        return self.has_partial_btc_hedge or self.has_partial_eth_hedge

    def credit_stable(self, amount: int) -> None:
        self.stable_deposited = checked_add_signed(
            self.stable_deposited, to_uint256(amount)
        )

    def debit_stable(self, amount: int) -> None:
        self.stable_deposited = checked_add_signed(
            self.stable_deposited, -to_uint256(amount)
        )

    def copy(self) -> VaultState:
        # Fields are immutable values; venues and config are shared on purpose
        return dataclasses.replace(self)


# ─────────────────────────────────────────────────────────────────────────────
# RESULTS
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OptimalBorrows:
    btc: int
    eth: int
    target_senior_borrow: int
    uncapped_eth: int
    is_partial_btc: bool = False
    is_partial_eth: bool = False
    is_capped: bool = False

    @property
    def is_partial(self) -> bool:
        return self.is_partial_btc or self.is_partial_eth


@dataclass(frozen=True)
class LoanLeg:
    asset: str
    token_amount: int = 0
    stable_bound: int = 0
    repay_debt: bool = False

    @property
    def is_empty(self) -> bool:
        return self.token_amount == 0

    def loan_asset(self, stable: str) -> str:
        # Debt decreases borrow stable to buy the token; increases borrow the token
        return stable if self.repay_debt else self.asset

    @property
    def loan_amount(self) -> int:
        return self.stable_bound if self.repay_debt else self.token_amount


@dataclass(frozen=True)
class LoanRequest:
    assets: list[str]
    amounts: list[int]


@dataclass(frozen=True)
class Preview:
    amount: int
    slippage: int


@dataclass(frozen=True)
class RebalanceGate:
    health_factor_low: bool = False
    time_elapsed: bool = False
    reserve_deviation: bool = False
    borrow_deviation: bool = False
    override_changed: bool = False
    partial_outstanding: bool = False

    @property
    def eligible(self) -> bool:
        return any(dataclasses.astuple(self))

    def reasons(self) -> list[str]:
        return [f.name for f in dataclasses.fields(self) if getattr(self, f.name)]


@dataclass(frozen=True)
class VaultStatus:
    total_assets: int
    total_shares: int
    basket_held: int
    current_btc_borrow: int
    current_eth_borrow: int
    borrow_value: int
    stable_deposited: int
    unhedged_basket_value: int
    collateral_balance: int
    senior_borrowed: int
    health_factor: int
    collateral_residual: int
    is_partially_hedged: bool
    last_rebalance_timestamp: int
    protocol_fee_accrued: int
    protocol_reward_token_accrued: int
    senior_tranche_unconverted_reward: int
    extra: dict[str, Any] = field(default_factory=dict)
