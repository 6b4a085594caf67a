"""
Plugin Registry

Maps a rule_type to the strategy that calculates and validates it. Built
once at start-up and only read during calculations.
"""

import logging

from .base import CommissionStrategy
from .bonus import BonusStrategy
from .multipliers import AcceleratorStrategy, DeceleratorStrategy
from .performance_gate import PerformanceGateStrategy
from .rates import BaseRateStrategy, ProductRateStrategy
from .team_split import TeamSplitStrategy
from .tiered import TieredStrategy

logger = logging.getLogger(__name__)

BUILTIN_STRATEGIES = (
    BaseRateStrategy,
    TieredStrategy,
    BonusStrategy,
    AcceleratorStrategy,
    DeceleratorStrategy,
    ProductRateStrategy,
    PerformanceGateStrategy,
    TeamSplitStrategy,
)


class PluginRegistry:
    """rule_type -> strategy map."""

    def __init__(self, strategies=None):
        self._strategies: dict[str, CommissionStrategy] = {}
        for strategy in strategies or ():
            self.register(strategy)

    @classmethod
    def with_builtins(cls) -> "PluginRegistry":
        return cls(strategy_class() for strategy_class in BUILTIN_STRATEGIES)

    def register(self, strategy, rule_type: str | None = None) -> None:
        """
        Register a strategy under ``rule_type`` (defaults to strategy.rule_type).

        Any object with callable ``calculate`` and ``validate`` is accepted.
        """
        key = rule_type or getattr(strategy, "rule_type", None)
        if not key:
            raise ValueError("A rule_type is required to register a strategy")
        if not callable(getattr(strategy, "calculate", None)):
            raise TypeError(f"Plugin {key} must have a calculate function")
        if not callable(getattr(strategy, "validate", None)):
            raise TypeError(f"Plugin {key} must have a validate function")

        if key in self._strategies:
            logger.info(f"Replacing commission plugin: {key}")
        self._strategies[key] = strategy
        logger.debug(f"Registered commission plugin: {key}")

    def get(self, rule_type: str):
        return self._strategies.get(rule_type)

    def __contains__(self, rule_type: str) -> bool:
        return rule_type in self._strategies

    @property
    def rule_types(self) -> list[str]:
        return list(self._strategies)
