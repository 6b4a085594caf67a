"""
Attainment-driven multipliers.

Both strategies pick a multiplier from a threshold schedule keyed on
attainmentPercentage, then pay amount x base_rate x multiplier. A rule
without a ``base_rate`` scales the running total instead.
"""

import logging
from decimal import Decimal

from ..models import StrategyContext
from ..money import to_decimal
from .base import CommissionStrategy, rate_in_range

logger = logging.getLogger(__name__)

ONE = Decimal("1")
LEGACY_ACCELERATOR_MULTIPLIER = Decimal("1.5")


def _schedule(config: dict, key: str, legacy_multiplier: Decimal) -> list[tuple[Decimal, Decimal]]:
    """(threshold, multiplier) pairs from a list, or the legacy single form."""
    entries = config.get(key)
    if entries is None and "threshold" in config:
        entries = [{"threshold": config["threshold"], "multiplier": config.get("multiplier", legacy_multiplier)}]
    return [(to_decimal(e["threshold"]), to_decimal(e["multiplier"])) for e in entries or []]


def _apply_multiplier(ctx: StrategyContext, multiplier: Decimal) -> Decimal:
    base_rate = ctx.config.get("base_rate")
    if base_rate is None:
        return ctx.base_commission * multiplier
    return ctx.deal.amount * to_decimal(base_rate) * multiplier


class AcceleratorStrategy(CommissionStrategy):
    """Highest threshold met wins; 1x when none is met."""

    rule_type = "accelerator"
    name = "Accelerator"

    def calculate(self, ctx: StrategyContext) -> Decimal:
        schedule = _schedule(ctx.config, "accelerators", LEGACY_ACCELERATOR_MULTIPLIER)
        multiplier = self.select_multiplier(schedule, ctx.attainment_percentage)
        return _apply_multiplier(ctx, multiplier)

    @staticmethod
    def select_multiplier(schedule: list[tuple[Decimal, Decimal]], attainment: Decimal) -> Decimal:
        for threshold, multiplier in sorted(schedule, key=lambda s: s[0], reverse=True):
            if attainment >= threshold:
                return multiplier
        return ONE

    def _validate_config(self, config: dict) -> bool:
        schedule = _schedule(config, "accelerators", LEGACY_ACCELERATOR_MULTIPLIER)
        if not schedule:
            return False
        if config.get("base_rate") is not None and not rate_in_range(config["base_rate"]):
            return False
        return all(threshold >= 0 and multiplier >= ONE for threshold, multiplier in schedule)


class DeceleratorStrategy(CommissionStrategy):
    """Highest unmet threshold wins, so the harshest penalty applies."""

    rule_type = "decelerator"
    name = "Decelerator"

    def calculate(self, ctx: StrategyContext) -> Decimal:
        schedule = _schedule(ctx.config, "decelerators", ONE)
        multiplier = self.select_multiplier(schedule, ctx.attainment_percentage)
        return _apply_multiplier(ctx, multiplier)

    @staticmethod
    def select_multiplier(schedule: list[tuple[Decimal, Decimal]], attainment: Decimal) -> Decimal:
        selected = ONE
        for threshold, multiplier in sorted(schedule, key=lambda s: s[0]):
            if attainment < threshold:
                selected = multiplier
        return selected

    def _validate_config(self, config: dict) -> bool:
        schedule = _schedule(config, "decelerators", ONE)
        if not schedule:
            return False
        if config.get("base_rate") is not None and not rate_in_range(config["base_rate"]):
            return False
        return all(threshold >= 0 and 0 < multiplier <= ONE for threshold, multiplier in schedule)
