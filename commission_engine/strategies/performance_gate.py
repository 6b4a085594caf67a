"""
Performance Gate Strategy

Checks the salesperson's metrics against a list of gates and scales the
running total. A failed hard gate with penalty_type "zero_commission"
returns 0 immediately. Soft gates are informational only.
"""

import logging
import operator
from decimal import Decimal

from ..models import StrategyContext
from ..money import HUNDRED, ZERO, to_decimal
from .base import CommissionStrategy

logger = logging.getLogger(__name__)

METRICS = {
    "quota_attainment": lambda ctx: ctx.attainment_percentage,
    "total_sales": lambda ctx: ctx.user_sales_total,
    "deal_count": lambda ctx: ctx.deal_count,
    "average_deal_size": lambda ctx: ctx.average_deal_size,
}

COMPARATORS = {
    ">=": operator.ge,
    ">": operator.gt,
    "<=": operator.le,
    "<": operator.lt,
    "==": operator.eq,
}

ENFORCEMENTS = ("hard", "soft")
PENALTY_ZERO = "zero_commission"
PENALTY_PERCENTAGE = "percentage_reduction"
PENALTY_TYPES = (PENALTY_ZERO, PENALTY_PERCENTAGE)


class PerformanceGateStrategy(CommissionStrategy):
    rule_type = "performance_gate"
    name = "Performance Gate"

    def calculate(self, ctx: StrategyContext) -> Decimal:
        penalty_multiplier = Decimal("1")

        for gate in ctx.config.get("gates") or []:
            metric = gate.get("metric")
            read_metric = METRICS.get(metric)
            if read_metric is None:
                logger.warning(f"Unknown performance gate metric '{metric}', skipping gate")
                continue

            op = gate.get("operator")
            compare = COMPARATORS.get(op)
            if compare is None:
                logger.warning(f"Unknown performance gate operator '{op}', skipping gate")
                continue

            actual = to_decimal(read_metric(ctx), ZERO)
            if compare(actual, to_decimal(gate.get("value"), ZERO)):
                continue

            if gate.get("enforcement", "hard") != "hard":
                logger.info(f"Soft gate failed: {metric} {op} {gate.get('value')} (actual {actual})")
                continue

            penalty_type = gate.get("penalty_type", PENALTY_ZERO)
            if penalty_type == PENALTY_ZERO:
                logger.info(f"Hard gate failed: {metric} {op} {gate.get('value')}, commission zeroed")
                return ZERO
            if penalty_type == PENALTY_PERCENTAGE:
                reduction = to_decimal(gate.get("penalty_value"), ZERO) / HUNDRED
                penalty_multiplier = max(ZERO, penalty_multiplier - reduction)
            else:
                logger.warning(f"Unknown gate penalty_type '{penalty_type}', no penalty applied")

        return ctx.base_commission * penalty_multiplier

    def _validate_config(self, config: dict) -> bool:
        gates = config.get("gates")
        if not gates or not isinstance(gates, list):
            return False
        for gate in gates:
            if gate.get("metric") not in METRICS or gate.get("operator") not in COMPARATORS:
                return False
            to_decimal(gate["value"])
            if gate.get("enforcement", "hard") not in ENFORCEMENTS:
                return False
            if gate.get("penalty_type", PENALTY_ZERO) not in PENALTY_TYPES:
                return False
            if gate.get("penalty_type") == PENALTY_PERCENTAGE:
                if not ZERO <= to_decimal(gate.get("penalty_value")) <= HUNDRED:
                    return False
        return True
