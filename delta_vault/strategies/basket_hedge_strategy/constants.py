from delta_vault.core.constants.base import MAX_UINT256

# ─────────────────────────────────────────────────────────────────────────────
# DEFAULT THRESHOLDS
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_TARGET_HEALTH_FACTOR_BPS = 15_000
DEFAULT_REBALANCE_HF_THRESHOLD_BPS = 12_500
DEFAULT_REBALANCE_TIME_THRESHOLD_SECONDS = 24 * 60 * 60
DEFAULT_REBALANCE_DELTA_THRESHOLD_BPS = 500

DEFAULT_SLIPPAGE_THRESHOLD_SWAP_BTC_BPS = 100
DEFAULT_SLIPPAGE_THRESHOLD_SWAP_ETH_BPS = 100
DEFAULT_SLIPPAGE_THRESHOLD_BASKET_BPS = 50

DEFAULT_FEE_BPS = 1_000
DEFAULT_DEPOSIT_CAP = MAX_UINT256

# ─────────────────────────────────────────────────────────────────────────────
# LOAN CALLBACK ENCODING
# ─────────────────────────────────────────────────────────────────────────────

# (ticket nonce, btc token amount, btc stable bound, eth token amount,
#  eth stable bound, repay btc debt, repay eth debt)
LOAN_CALLBACK_ABI_TYPES = [
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "uint256",
    "bool",
    "bool",
]
