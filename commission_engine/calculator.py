"""
Commission Calculator - Rule Pipeline

Runs a company's rule set against one deal:
1. Sort rules by priority (stable for ties)
2. Skip inactive or out-of-window rules
3. Skip rules whose conditions do not match
4. Skip rules with no registered strategy
5. Invoke the strategy with the running total as baseCommission
6. Merge per calculation_type (cumulative / replace / max)
7. Stop early when the rule says so
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict

from .conditions import ConditionEvaluator
from .config import EngineSettings
from .models import (
    CALC_MAX,
    CALC_REPLACE,
    AppliedRule,
    CalculationContext,
    CalculationResult,
    CommissionRule,
    Deal,
)
from .money import ROUND_PER_RULE, ZERO, quantize_money
from .output import OutputBuilder
from .strategies import PluginRegistry

logger = logging.getLogger(__name__)


class CommissionCalculator:
    """Priority-ordered rule evaluator. Holds no per-calculation state."""

    def __init__(
        self,
        registry: PluginRegistry | None = None,
        settings: EngineSettings | None = None,
        evaluator: ConditionEvaluator | None = None,
    ):
        self.registry = registry or PluginRegistry.with_builtins()
        self.settings = settings or EngineSettings()
        self.evaluator = evaluator or ConditionEvaluator()
        self.output_builder = OutputBuilder()

    def calculate(
        self,
        deal: Deal,
        rules: list[CommissionRule],
        context: CalculationContext | None = None,
    ) -> CalculationResult:
        """
        Calculate the commission for a deal.

        Args:
            deal: The closed deal
            rules: The company's rule set, in any order
            context: Salesperson/period facts (sales total, attainment, ...)

        Returns:
            CalculationResult with the total and the ordered trace of applied rules
        """
        context = context or CalculationContext()
        facts = context.facts(deal)
        per_rule_rounding = self.settings.rounding_policy == ROUND_PER_RULE

        total = ZERO
        applied: list[AppliedRule] = []

        for rule in sorted(rules, key=lambda r: r.priority):
            if not rule.is_effective_on(deal.close_date):
                logger.debug(f"Rule {rule.id} ({rule.name}) not active on {deal.close_date}, skipping")
                continue

            if rule.conditions and not self.evaluator.evaluate(rule.conditions, facts):
                logger.info(f"Rule {rule.id} ({rule.name}) conditions not met, skipping")
                continue

            strategy = self.registry.get(rule.rule_type)
            if strategy is None:
                logger.warning(f"No plugin found for rule type: {rule.rule_type}")
                continue

            ctx = context.for_rule(deal, rule.strategy_config, total)
            amount = strategy.calculate(ctx)
            if per_rule_rounding:
                amount = quantize_money(amount)

            total = self._merge(total, amount, rule.calculation_type)

            applied.append(
                AppliedRule(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    rule_type=rule.rule_type,
                    commission_amount=amount,
                    priority=rule.priority,
                    calculation_type=rule.calculation_type,
                )
            )

            if rule.stops_processing:
                logger.debug(f"Rule {rule.id} ({rule.name}) stops processing")
                break

        return CalculationResult(
            total_commission=quantize_money(total),
            applied_rules=applied,
            calculation_timestamp=datetime.now(timezone.utc),
            rounding_policy=self.settings.rounding_policy,
        )

    @staticmethod
    def _merge(total: Decimal, amount: Decimal, calculation_type: str) -> Decimal:
        if calculation_type == CALC_REPLACE:
            return amount
        if calculation_type == CALC_MAX:
            return max(total, amount)
        # cumulative, and any legacy type
        return total + amount

    def calculate_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calculate from a raw {"deal", "rules", "context"} payload.

        Convenience method for API usage.
        """
        deal = Deal.from_dict(data.get("deal") or {})
        rules = [CommissionRule.from_dict(r) for r in data.get("rules") or []]
        context = CalculationContext.from_dict(data.get("context"))
        result = self.calculate(deal, rules, context)
        return self.output_builder.calculation(result)

    def preview(self, deal: Deal, rules: list[CommissionRule], context: CalculationContext | None = None) -> dict:
        """Dry run against a sample deal, with a per-rule breakdown. Nothing is persisted."""
        result = self.calculate(deal, rules, context)
        return {
            "rules_tested": len(rules),
            "result": self.output_builder.calculation(result),
            "breakdown": self.output_builder.breakdown(result),
        }
