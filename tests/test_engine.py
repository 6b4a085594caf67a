"""
Tests for the CommissionEngine facade

Run with: python -m pytest tests/ -v
"""

import pytest
from datetime import date
from decimal import Decimal

from commission_engine import CalculationContext, CommissionEngine, CommissionRule, Deal
from commission_engine.exceptions import InvalidRuleError
from commission_engine.strategies import CommissionStrategy


class RetentionBonusStrategy(CommissionStrategy):
    """Pays a percentage of the running total for renewals."""

    rule_type = "retention_bonus"
    name = "Retention Bonus"

    def calculate(self, ctx):
        return ctx.base_commission * Decimal(str(ctx.config["percent"])) / Decimal('100')

    def _validate_config(self, config):
        return 0 < config["percent"] <= 100


class TestCommissionEngine:
    """Test the engine facade end to end."""

    @pytest.fixture
    def engine(self):
        return CommissionEngine(extra_strategies={"retention_bonus": RetentionBonusStrategy()})

    @pytest.fixture
    def deal(self):
        return Deal(amount=Decimal('100000'), close_date=date(2025, 3, 15), id="deal-1", user_id="rep-1", company_id="acme")

    @pytest.fixture
    def rules(self):
        return [
            CommissionRule(id="r1", name="Base", rule_type="base_rate", priority=10, config={"rate": 0.05}),
            CommissionRule(id="r2", name="Retention", rule_type="retention_bonus", priority=20, config={"percent": 10}),
        ]

    def test_custom_strategy_participates(self, engine, deal, rules):
        result = engine.calculate_commission(deal, rules, CalculationContext())
        assert result.total_commission == Decimal('5500.00')

    def test_engines_do_not_share_plugins(self, engine, deal, rules):
        """A strategy registered on one engine is unknown to another."""
        plain = CommissionEngine()
        assert "retention_bonus" in engine.registry
        assert "retention_bonus" not in plain.registry
        assert plain.calculate_commission(deal, rules).total_commission == Decimal('5000.00')

    def test_validate_custom_rule(self, engine):
        rule = CommissionRule(
            id="r3", name="Retention", rule_type="retention_bonus",
            config={"percent": 500}, effective_from=date(2025, 1, 1),
        )
        with pytest.raises(InvalidRuleError, match="Invalid configuration for retention_bonus rule"):
            engine.validate_rule(rule)

    def test_calculate_record_approve_pay(self, engine, deal, rules):
        """Calculate, record, approve and pay a single deal."""
        result = engine.calculate_commission(deal, rules)
        record = engine.record_calculation(deal, result, "rep-1")

        engine.process_approval(record.id, "review", "manager-1")
        engine.process_approval(record.id, "approve", "manager-1")
        paid = engine.process_approval(record.id, "pay", "finance-1", payment_reference="PAY-42")

        assert paid.status == "paid"
        assert paid.commission_amount == Decimal('5500.00')
        assert engine.approvals.verify_history(record.id) == "paid"

    def test_recalculate_with_new_rules(self, engine, deal, rules):
        record = engine.record_calculation(deal, engine.calculate_commission(deal, rules), "rep-1")
        engine.process_approval(record.id, "review", "manager-1")

        updated = engine.recalculate(record.id, deal, rules[:1], actor_id="ops-1")

        assert updated.status == "calculated"
        assert updated.commission_amount == Decimal('5000.00')
        assert updated.calculated_by == "ops-1"

    def test_bulk_through_engine(self, engine, deal, rules):
        result = engine.calculate_commission(deal, rules)
        ids = [engine.record_calculation(deal, result).id for _ in range(2)]

        batch = engine.process_bulk_approval(ids, "approve", "manager-1", company_id="acme")

        assert batch.processed == 2
        assert batch.success is True
