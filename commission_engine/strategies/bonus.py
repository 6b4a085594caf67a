"""
Bonus / SPIFF Strategy

Pays a fixed amount when the deal passes simple gating criteria.
"""

from decimal import Decimal

from ..models import Deal, StrategyContext
from ..money import ZERO, to_decimal
from .base import CommissionStrategy

CRITERIA_KEYS = ("min_amount", "product_types", "stages")


class BonusStrategy(CommissionStrategy):
    rule_type = "bonus"
    name = "Bonus/SPIFF"

    def calculate(self, ctx: StrategyContext) -> Decimal:
        config = ctx.config
        if not self.meets_criteria(self._criteria(config), ctx.deal):
            return ZERO
        return to_decimal(config.get("amount"), ZERO)

    @staticmethod
    def _criteria(config: dict) -> dict:
        # Criteria may be nested under "conditions" or given at the top level
        nested = config.get("conditions")
        if isinstance(nested, dict):
            return nested
        return {key: config[key] for key in CRITERIA_KEYS if key in config}

    @staticmethod
    def meets_criteria(criteria: dict, deal: Deal) -> bool:
        min_amount = criteria.get("min_amount")
        if min_amount and deal.amount < to_decimal(min_amount):
            return False

        product_types = criteria.get("product_types")
        if product_types and deal.product_type not in product_types:
            return False

        stages = criteria.get("stages")
        if stages and deal.stage not in stages:
            return False

        return True

    def _validate_config(self, config: dict) -> bool:
        return "amount" in config and to_decimal(config["amount"]) >= 0
