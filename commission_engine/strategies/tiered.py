"""
Tiered Commission Strategy

Bands are measured against the salesperson's period total including this
deal (userSalesTotal + amount).
"""

import logging
from decimal import Decimal

from ..models import TIER_TYPES, StrategyContext, Tier
from ..money import ZERO
from .base import CommissionStrategy, rate_in_range

logger = logging.getLogger(__name__)


class TieredStrategy(CommissionStrategy):
    """
    Graduated and cliff tiers.

    - graduated (and cumulative): each band pays its own rate on the part of
      the total that falls inside it
    - cliff: the whole deal is paid at the rate of the last band reached,
      overwriting anything accumulated so far
    """

    rule_type = "tiered"
    name = "Tiered Commission"

    def calculate(self, ctx: StrategyContext) -> Decimal:
        config = ctx.config
        amount = ctx.deal.amount
        total_sales = ctx.user_sales_total + amount
        default_type = config.get("type") or "graduated"

        tiers = sorted(
            (Tier.from_dict(t, i) for i, t in enumerate(config.get("tiers") or [])),
            key=lambda t: t.tier_number,
        )

        commission = ZERO
        previous_threshold = ZERO
        for tier in tiers:
            tier_max = tier.threshold_max if tier.threshold_max is not None else total_sales
            tier_type = tier.type or default_type

            if total_sales > tier.threshold_min:
                if tier_type == "cliff":
                    commission = amount * tier.rate
                else:
                    portion = min(total_sales, tier_max) - max(previous_threshold, tier.threshold_min)
                    if portion > 0:
                        commission += portion * tier.rate

            previous_threshold = tier_max

        return commission

    def _validate_config(self, config: dict) -> bool:
        tiers = config.get("tiers")
        if not tiers or not isinstance(tiers, list):
            return False
        if config.get("type") is not None and config["type"] not in TIER_TYPES:
            return False
        for i, data in enumerate(tiers):
            tier = Tier.from_dict(data, i)
            if not rate_in_range(tier.rate):
                return False
            if tier.type is not None and tier.type not in TIER_TYPES:
                return False
            if tier.threshold_max is not None and tier.threshold_max < tier.threshold_min:
                return False
        return True
