from .arbitrage import ArbitrageStrategy
from .backrun import BackrunStrategy, MempoolTargetScanner, ProfitEstimator
from .base import StrategyLoop
from .types import (
    ArbitrageConfig,
    ArbitrageOpportunity,
    BackrunConfig,
    BackrunInstructionBuilder,
    CycleOutcome,
    OpportunityScanner,
    SwapInstructionBuilder,
    TargetScanner,
    TargetTransaction,
    TokenPair,
)

__all__ = [
    "ArbitrageConfig",
    "ArbitrageOpportunity",
    "ArbitrageStrategy",
    "BackrunConfig",
    "BackrunInstructionBuilder",
    "BackrunStrategy",
    "CycleOutcome",
    "MempoolTargetScanner",
    "OpportunityScanner",
    "ProfitEstimator",
    "StrategyLoop",
    "SwapInstructionBuilder",
    "TargetScanner",
    "TargetTransaction",
    "TokenPair",
]
