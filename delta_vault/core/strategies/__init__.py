from .Strategy import StatusDict, StatusTuple, Strategy, StrategyConfig

__all__ = [
    "Strategy",
    "StatusDict",
    "StatusTuple",
    "StrategyConfig",
]
