"""
Strategies Package

Built-in commission strategies and the registry that dispatches to them.
"""

from .base import CommissionStrategy
from .bonus import BonusStrategy
from .multipliers import AcceleratorStrategy, DeceleratorStrategy
from .performance_gate import PerformanceGateStrategy
from .rates import BaseRateStrategy, ProductRateStrategy
from .registry import BUILTIN_STRATEGIES, PluginRegistry
from .team_split import TeamSplitStrategy, split_breakdown
from .tiered import TieredStrategy

__all__ = [
    "CommissionStrategy",
    "PluginRegistry",
    "BUILTIN_STRATEGIES",
    "BaseRateStrategy",
    "TieredStrategy",
    "BonusStrategy",
    "AcceleratorStrategy",
    "DeceleratorStrategy",
    "ProductRateStrategy",
    "PerformanceGateStrategy",
    "TeamSplitStrategy",
    "split_breakdown",
]
