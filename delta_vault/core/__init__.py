from delta_vault.core.adapters.BaseAdapter import BaseAdapter
from delta_vault.core.strategies.Strategy import (
    StatusDict,
    StatusTuple,
    Strategy,
)

__all__ = [
    "Strategy",
    "StatusDict",
    "StatusTuple",
    "BaseAdapter",
]
