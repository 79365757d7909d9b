from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.adapters.interfaces import (
    BasketManager,
    LendingMarket,
    LoanProvider,
    LoanReceiver,
    RewardClaim,
    SeniorTranche,
    SwapVenue,
    TraderOverrideOracle,
    Transactional,
)

__all__ = [
    "BaseAdapter",
    "BasketManager",
    "LendingMarket",
    "LoanProvider",
    "LoanReceiver",
    "RewardClaim",
    "SeniorTranche",
    "SwapVenue",
    "TraderOverrideOracle",
    "Transactional",
]
