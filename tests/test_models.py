"""Tests for models, money helpers and settings."""

import pytest
from datetime import date
from decimal import Decimal

from commission_engine.config import EngineSettings
from commission_engine.models import CalculationContext, Deal, parse_date
from commission_engine.money import format_money, quantize_money, to_decimal


class TestMoney:
    """Test decimal conversion and rounding helpers."""

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal('0.1')

    def test_default_for_empty(self):
        assert to_decimal(None, Decimal('0')) == Decimal('0')
        assert to_decimal("", Decimal('0')) == Decimal('0')

    def test_rejects_empty_without_default(self):
        with pytest.raises(ValueError):
            to_decimal(None)

    def test_rejects_bool_and_garbage(self):
        with pytest.raises(ValueError):
            to_decimal(True)
        with pytest.raises(ValueError, match="Invalid numeric value"):
            to_decimal("12abc")

    def test_half_up(self):
        """Half cents always round away from zero."""
        assert quantize_money(Decimal('2.675')) == Decimal('2.68')
        assert quantize_money(Decimal('2.665')) == Decimal('2.67')

    def test_format(self):
        assert format_money(Decimal('5000')) == "5000.00"


class TestDeal:
    """Test deal parsing."""

    def test_from_dict(self):
        deal = Deal.from_dict({
            "id": "d1",
            "deal_name": "Acme renewal",
            "amount": "25000.50",
            "close_date": "2025-03-15T10:00:00Z",
            "is_new_business": False,
        })

        assert deal.amount == Decimal('25000.50')
        assert deal.name == "Acme renewal"
        assert deal.close_date == date(2025, 3, 15)
        assert deal.as_fact()["is_new_business"] is False

    def test_amount_required(self):
        with pytest.raises(ValueError, match="deal.amount is required"):
            Deal.from_dict({"id": "d1"})

    def test_parse_date(self):
        assert parse_date("2025-01-31") == date(2025, 1, 31)
        assert parse_date(None) is None


class TestCalculationContext:
    """Test context construction and derived metrics."""

    def test_for_target_derives_attainment(self):
        context = CalculationContext.for_target(50000, quota_amount=40000, deal_count=4)

        assert context.attainment_percentage == Decimal('125')
        assert context.average_deal_size == Decimal('12500')

    def test_for_target_without_quota(self):
        context = CalculationContext.for_target(50000)

        assert context.attainment_percentage == Decimal('0')
        assert context.average_deal_size is None

    def test_from_dict_accepts_both_spellings(self):
        camel = CalculationContext.from_dict({"userSalesTotal": 1000, "attainmentPercentage": 80})
        snake = CalculationContext.from_dict({"user_sales_total": 1000, "attainment_percentage": 80})

        assert camel.user_sales_total == snake.user_sales_total == Decimal('1000')
        assert camel.attainment_percentage == snake.attainment_percentage == Decimal('80')

    def test_from_dict_derives_average_deal_size(self):
        """averageDealSize falls back to userSalesTotal / dealCount."""
        context = CalculationContext.from_dict({"userSalesTotal": 90000, "dealCount": 3})
        assert context.average_deal_size == Decimal('30000')

    def test_from_dict_keeps_supplied_average(self):
        context = CalculationContext.from_dict({"userSalesTotal": 90000, "dealCount": 3, "averageDealSize": 25000})
        assert context.average_deal_size == Decimal('25000')

    def test_from_dict_without_deals_has_no_average(self):
        assert CalculationContext.from_dict({"userSalesTotal": 90000, "dealCount": 0}).average_deal_size is None
        assert CalculationContext.from_dict({"userSalesTotal": 90000}).average_deal_size is None

    def test_for_target_keeps_supplied_average(self):
        context = CalculationContext.for_target(50000, quota_amount=40000, deal_count=4, average_deal_size=9000)
        assert context.average_deal_size == Decimal('9000')

    def test_unknown_keys_become_facts(self):
        """Keys with no context field are passed through as condition facts."""
        context = CalculationContext.from_dict({"territory": "west"})
        facts = context.facts(Deal(amount=Decimal('1')))

        assert facts["territory"] == "west"
        assert facts["deal"]["amount"] == Decimal('1')


class TestEngineSettings:
    """Test settings loaded from the environment."""

    def test_defaults(self):
        settings = EngineSettings.from_env({})

        assert settings.environment == "dev"
        assert settings.log_level == "INFO"
        assert settings.rounding_policy == "per_rule"

    def test_from_env(self):
        settings = EngineSettings.from_env({
            "ENVIRONMENT": "prod",
            "LOG_LEVEL": "debug",
            "COMMISSION_ROUNDING": "final",
        })

        assert settings.environment == "prod"
        assert settings.log_level == "DEBUG"
        assert settings.rounding_policy == "final"

    def test_invalid_rounding(self):
        with pytest.raises(ValueError, match="Invalid COMMISSION_ROUNDING"):
            EngineSettings.from_env({"COMMISSION_ROUNDING": "banker"})
