"""
Rule Validation for the Commission Engine

Validates rule definitions at authoring time, so malformed configuration
never reaches a calculation. Raises InvalidRuleError with a clear message
for any constraint violation.
"""

from .conditions import ConditionEvaluator
from .exceptions import InvalidRuleError
from .models import CALCULATION_TYPES, LEGACY_CALCULATION_TYPES, TIER_TYPES, CommissionRule
from .strategies import PluginRegistry

MIN_PRIORITY = 1
MAX_PRIORITY = 1000


class RuleValidator:
    """Validates commission rules according to business rules."""

    def __init__(self, registry: PluginRegistry, evaluator: ConditionEvaluator | None = None):
        self.registry = registry
        self.evaluator = evaluator or ConditionEvaluator()

    def validate(self, rule: CommissionRule) -> None:
        """
        Run all validations. Raises InvalidRuleError if any check fails.
        """
        self._validate_basics(rule)
        self._validate_window(rule)
        self._validate_tiers(rule)
        self._validate_conditions(rule)
        self._validate_config(rule)

    def _validate_basics(self, rule: CommissionRule) -> None:
        if not rule.name or not (3 <= len(rule.name) <= 100):
            raise InvalidRuleError(f"name must be 3-100 characters, got: {rule.name!r}", rule.rule_type)

        if rule.rule_type not in self.registry:
            raise InvalidRuleError(
                f"Invalid rule_type: {rule.rule_type}. Must be one of {', '.join(self.registry.rule_types)}",
                rule.rule_type,
            )

        if not (MIN_PRIORITY <= rule.priority <= MAX_PRIORITY):
            raise InvalidRuleError(
                f"priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}, got: {rule.priority}",
                rule.rule_type,
            )

        if rule.calculation_type not in CALCULATION_TYPES + LEGACY_CALCULATION_TYPES:
            raise InvalidRuleError(
                f"Invalid calculation_type: {rule.calculation_type}. "
                f"Must be one of {', '.join(CALCULATION_TYPES)}",
                rule.rule_type,
            )

    def _validate_window(self, rule: CommissionRule) -> None:
        if rule.effective_from is None:
            raise InvalidRuleError("effective_from is required", rule.rule_type)
        if rule.effective_to is not None and rule.effective_to < rule.effective_from:
            raise InvalidRuleError(
                f"effective_to ({rule.effective_to}) cannot be before effective_from ({rule.effective_from})",
                rule.rule_type,
            )

    def _validate_tiers(self, rule: CommissionRule) -> None:
        if rule.rule_type == "tiered" and not rule.tiers and not rule.config.get("tiers"):
            raise InvalidRuleError("tiers are required when rule_type='tiered'", rule.rule_type)

        if rule.rule_type != "tiered" and rule.tiers:
            raise InvalidRuleError("tiers are only allowed when rule_type='tiered'", rule.rule_type)

        for tier in rule.tiers:
            if not (0 <= tier.rate <= 1):
                raise InvalidRuleError(
                    f"Tier {tier.tier_number} rate must be between 0 and 1, got: {tier.rate}",
                    rule.rule_type,
                )
            if tier.type is not None and tier.type not in TIER_TYPES:
                raise InvalidRuleError(f"Tier {tier.tier_number} has invalid type: {tier.type}", rule.rule_type)

    def _validate_conditions(self, rule: CommissionRule) -> None:
        problems = self.evaluator.validate(rule.conditions)
        if problems:
            raise InvalidRuleError(f"Invalid conditions: {'; '.join(problems)}", rule.rule_type)

    def _validate_config(self, rule: CommissionRule) -> None:
        strategy = self.registry.get(rule.rule_type)
        if not strategy.validate(rule.strategy_config):
            raise InvalidRuleError(f"Invalid configuration for {rule.rule_type} rule", rule.rule_type)
