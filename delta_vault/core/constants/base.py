MAX_BPS = 10_000
BPS_TO_WAD = 10**14

WAD = 10**18
RAY = 10**27
PRICE_PRECISION = 10**30
RATE_PRECISION = 10**30

MAX_UINT256 = 2**256 - 1
MAX_INT256 = 2**255 - 1
MIN_INT256 = -(2**255)

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Aave-style interest rate mode for variable debt
VARIABLE_RATE_MODE = 2

# Uniswap fee tiers, in pips (1e-6)
FEE_TIER_DENOMINATOR = 1_000_000
