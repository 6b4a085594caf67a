"""
Percentage-of-deal strategies: a single base rate, or a rate per product.
"""

from decimal import Decimal

from ..models import StrategyContext
from ..money import to_decimal
from .base import DEFAULT_RATE, CommissionStrategy, rate_in_range


class BaseRateStrategy(CommissionStrategy):
    """amount x rate"""

    rule_type = "base_rate"
    name = "Base Rate Commission"

    def calculate(self, ctx: StrategyContext) -> Decimal:
        rate = to_decimal(ctx.config.get("rate"), DEFAULT_RATE)
        return ctx.deal.amount * rate

    def _validate_config(self, config: dict) -> bool:
        return "rate" in config and rate_in_range(config["rate"])


class ProductRateStrategy(CommissionStrategy):
    """Rate looked up by the deal's product type or category."""

    rule_type = "product_rate"
    name = "Product Specific Rate"

    def calculate(self, ctx: StrategyContext) -> Decimal:
        deal = ctx.deal
        product = self._find_product(ctx.config.get("products") or [], deal)
        if product is not None:
            rate = to_decimal(product["rate"])
        else:
            rate = to_decimal(ctx.config.get("default_rate"), DEFAULT_RATE)
        return deal.amount * rate

    @staticmethod
    def _find_product(products: list, deal) -> dict | None:
        for product in products:
            if product.get("product_type") is not None and product.get("product_type") == deal.product_type:
                return product
            if product.get("category") is not None and product.get("category") == deal.product_category:
                return product
        return None

    def _validate_config(self, config: dict) -> bool:
        products = config.get("products")
        if not isinstance(products, list):
            return False
        for product in products:
            if not (product.get("product_type") or product.get("category")):
                return False
            if not rate_in_range(product["rate"]):
                return False
        if config.get("default_rate") is not None and not rate_in_range(config["default_rate"]):
            return False
        return True
