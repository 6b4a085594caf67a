"""
Strategy interface shared by every commission plugin.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from ..models import StrategyContext
from ..money import to_decimal

# Rate used when a rule omits one
DEFAULT_RATE = Decimal("0.05")


def rate_in_range(value) -> bool:
    """True for a rate expressed as a fraction between 0 and 1."""
    return Decimal("0") <= to_decimal(value) <= Decimal("1")


class CommissionStrategy(ABC):
    """Calculation + validation pair registered under a rule type."""

    rule_type: str = ""
    name: str = ""

    @abstractmethod
    def calculate(self, ctx: StrategyContext) -> Decimal:
        """Return this rule's commission amount for the deal."""

    def validate(self, config: dict) -> bool:
        """Check a rule configuration at authoring time. Never raises."""
        if not isinstance(config, dict):
            return False
        try:
            return bool(self._validate_config(config))
        except (ValueError, TypeError, KeyError, AttributeError):
            return False

    @abstractmethod
    def _validate_config(self, config: dict) -> bool:
        """Strategy-specific checks; may raise on malformed values."""
