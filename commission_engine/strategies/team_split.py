"""
Team Split Strategy

Distributes the running total across recipients by percentage. The rule
returns the first recipient's share; ``split_breakdown`` gives every share
so the caller can record the others.
"""

import logging
from decimal import Decimal

from ..models import StrategyContext
from ..money import HUNDRED, ZERO, quantize_money, to_decimal
from .base import CommissionStrategy

logger = logging.getLogger(__name__)


def split_breakdown(base_commission: Decimal, splits: list[dict]) -> list[dict]:
    """Every recipient's share of ``base_commission``."""
    return [
        {
            "user_id": split.get("user_id"),
            "role": split.get("role"),
            "percentage": to_decimal(split["percentage"]),
            "amount": quantize_money(base_commission * to_decimal(split["percentage"]) / HUNDRED),
        }
        for split in splits
    ]


class TeamSplitStrategy(CommissionStrategy):
    rule_type = "team_split"
    name = "Team Split"

    def calculate(self, ctx: StrategyContext) -> Decimal:
        splits = ctx.config.get("splits") or []
        if not splits:
            return ZERO

        total = sum((to_decimal(s["percentage"]) for s in splits), ZERO)
        if total != HUNDRED:
            logger.warning(f"Team split percentages sum to {total}, not 100")

        first = to_decimal(splits[0]["percentage"])
        return ctx.base_commission * first / HUNDRED

    def _validate_config(self, config: dict) -> bool:
        splits = config.get("splits")
        if not splits or not isinstance(splits, list):
            return False
        return all(ZERO < to_decimal(s["percentage"]) <= HUNDRED for s in splits)
