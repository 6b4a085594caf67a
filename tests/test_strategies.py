"""
Unit Tests for the built-in commission strategies.

Each strategy is called directly with a StrategyContext, the same way the
calculation pipeline invokes it.
"""

import pytest
from decimal import Decimal

from commission_engine.models import Deal, StrategyContext
from commission_engine.strategies import (
    AcceleratorStrategy,
    BaseRateStrategy,
    BonusStrategy,
    CommissionStrategy,
    DeceleratorStrategy,
    PerformanceGateStrategy,
    PluginRegistry,
    ProductRateStrategy,
    TeamSplitStrategy,
    TieredStrategy,
    split_breakdown,
)


def make_ctx(config, amount=100000, base_commission=0, user_sales_total=0, attainment=0, **deal_fields):
    return StrategyContext(
        deal=Deal(amount=Decimal(str(amount)), **deal_fields),
        config=config,
        base_commission=Decimal(str(base_commission)),
        user_sales_total=Decimal(str(user_sales_total)),
        attainment_percentage=Decimal(str(attainment)),
    )


class TestBaseRate:
    """Test flat percentage commission."""

    @pytest.fixture
    def strategy(self):
        return BaseRateStrategy()

    def test_amount_times_rate(self, strategy):
        assert strategy.calculate(make_ctx({"rate": 0.05})) == Decimal('5000.00')

    def test_missing_rate_defaults_to_five_percent(self, strategy):
        assert strategy.calculate(make_ctx({}, amount=1000)) == Decimal('50')

    def test_validate(self, strategy):
        assert strategy.validate({"rate": 0.1}) is True
        assert strategy.validate({"rate": 1.5}) is False
        assert strategy.validate({}) is False
        assert strategy.validate({"rate": "abc"}) is False
        assert strategy.validate(None) is False


class TestTiered:
    """Test graduated and cliff tiers."""

    @pytest.fixture
    def strategy(self):
        return TieredStrategy()

    @pytest.fixture
    def graduated_tiers(self):
        return [
            {"tier_number": 1, "threshold_min": 0, "threshold_max": 50000, "rate": 0.03},
            {"tier_number": 2, "threshold_min": 50000, "threshold_max": 100000, "rate": 0.05},
        ]

    def test_graduated_bands(self, strategy, graduated_tiers):
        """50000 x 3% + 30000 x 5%"""
        ctx = make_ctx({"type": "graduated", "tiers": graduated_tiers}, amount=80000)
        assert strategy.calculate(ctx) == Decimal('3000.00')

    def test_tiers_sorted_by_tier_number(self, strategy, graduated_tiers):
        ctx = make_ctx({"tiers": list(reversed(graduated_tiers))}, amount=80000)
        assert strategy.calculate(ctx) == Decimal('3000.00')

    def test_prior_sales_push_deal_into_higher_band(self, strategy, graduated_tiers):
        """Prior sales count toward the band the deal starts in."""
        # Period total 60000 + 20000: the whole 80000 is measured, not just the deal
        ctx = make_ctx({"tiers": graduated_tiers}, amount=20000, user_sales_total=60000)
        assert strategy.calculate(ctx) == Decimal('3000.00')

    def test_open_ended_top_tier(self, strategy):
        tiers = [
            {"tier_number": 1, "threshold_min": 0, "threshold_max": 50000, "rate": 0.03},
            {"tier_number": 2, "threshold_min": 50000, "threshold_max": None, "rate": 0.10},
        ]
        ctx = make_ctx({"tiers": tiers}, amount=150000)
        assert strategy.calculate(ctx) == Decimal('1500.00') + Decimal('10000.00')

    def test_cliff_pays_whole_deal_at_highest_reached_rate(self, strategy):
        """A cliff tier pays the whole amount at one rate."""
        tiers = [
            {"tier_number": 1, "threshold_min": 0, "threshold_max": 50000, "rate": 0.03},
            {"tier_number": 2, "threshold_min": 50000, "threshold_max": None, "rate": 0.05},
        ]
        ctx = make_ctx({"type": "cliff", "tiers": tiers}, amount=80000)
        assert strategy.calculate(ctx) == Decimal('4000.00')

    def test_validate(self, strategy, graduated_tiers):
        assert strategy.validate({"tiers": graduated_tiers}) is True
        assert strategy.validate({"tiers": []}) is False
        assert strategy.validate({}) is False
        assert strategy.validate({"type": "stepped", "tiers": graduated_tiers}) is False
        bad_rate = [{"tier_number": 1, "threshold_min": 0, "threshold_max": None, "rate": 3}]
        assert strategy.validate({"tiers": bad_rate}) is False


class TestBonus:
    """Test fixed bonus payouts."""

    @pytest.fixture
    def strategy(self):
        return BonusStrategy()

    def test_pays_fixed_amount(self, strategy):
        assert strategy.calculate(make_ctx({"amount": 500})) == Decimal('500')

    def test_min_amount_not_met(self, strategy):
        ctx = make_ctx({"amount": 500, "conditions": {"min_amount": 10000}}, amount=5000)
        assert strategy.calculate(ctx) == Decimal('0')

    def test_top_level_criteria(self, strategy):
        config = {"amount": 250, "product_types": ["software"], "stages": ["closed_won"]}
        hit = make_ctx(config, product_type="software", stage="closed_won")
        miss = make_ctx(config, product_type="hardware", stage="closed_won")
        assert strategy.calculate(hit) == Decimal('250')
        assert strategy.calculate(miss) == Decimal('0')

    def test_validate(self, strategy):
        assert strategy.validate({"amount": 100}) is True
        assert strategy.validate({"amount": -1}) is False
        assert strategy.validate({}) is False


class TestAccelerator:
    """Test attainment multipliers above quota."""

    @pytest.fixture
    def strategy(self):
        return AcceleratorStrategy()

    @pytest.fixture
    def schedule(self):
        return [{"threshold": 50, "multiplier": 1.2}, {"threshold": 100, "multiplier": 1.5}]

    def test_highest_met_threshold_wins(self, strategy, schedule):
        ctx = make_ctx({"base_rate": 0.05, "accelerators": schedule}, attainment=110)
        assert strategy.calculate(ctx) == Decimal('7500.00')

    def test_lower_threshold(self, strategy, schedule):
        ctx = make_ctx({"base_rate": 0.05, "accelerators": schedule}, attainment=75)
        assert strategy.calculate(ctx) == Decimal('6000.00')

    def test_no_threshold_met_is_one(self, strategy, schedule):
        """Below every threshold the multiplier is 1."""
        ctx = make_ctx({"base_rate": 0.05, "accelerators": schedule}, attainment=10)
        assert strategy.calculate(ctx) == Decimal('5000.00')

    def test_without_base_rate_scales_running_total(self, strategy):
        ctx = make_ctx({"threshold": 100, "multiplier": 1.5}, base_commission=2000, attainment=100)
        assert strategy.calculate(ctx) == Decimal('3000.0')

    def test_validate(self, strategy, schedule):
        assert strategy.validate({"accelerators": schedule}) is True
        assert strategy.validate({"accelerators": [{"threshold": 100, "multiplier": 0.9}]}) is False
        assert strategy.validate({}) is False


class TestDecelerator:
    """Test multipliers below quota."""

    @pytest.fixture
    def strategy(self):
        return DeceleratorStrategy()

    def test_harshest_unmet_threshold_wins(self, strategy):
        schedule = [(Decimal('50'), Decimal('0.8')), (Decimal('80'), Decimal('0.5'))]
        assert strategy.select_multiplier(schedule, Decimal('40')) == Decimal('0.5')

    def test_applies_multiplier(self, strategy):
        config = {"base_rate": 0.05, "decelerators": [{"threshold": 50, "multiplier": 0.8}, {"threshold": 80, "multiplier": 0.5}]}
        assert strategy.calculate(make_ctx(config, attainment=40)) == Decimal('2500.00')
        assert strategy.calculate(make_ctx(config, attainment=90)) == Decimal('5000.00')

    def test_validate(self, strategy):
        assert strategy.validate({"decelerators": [{"threshold": 50, "multiplier": 0.8}]}) is True
        assert strategy.validate({"decelerators": [{"threshold": 50, "multiplier": 1.2}]}) is False
        assert strategy.validate({"decelerators": [{"threshold": 50, "multiplier": 0}]}) is False


class TestProductRate:
    """Test rates selected by product."""

    @pytest.fixture
    def strategy(self):
        return ProductRateStrategy()

    @pytest.fixture
    def config(self):
        return {
            "products": [
                {"product_type": "software", "rate": 0.10},
                {"category": "services", "rate": 0.02},
            ],
            "default_rate": 0.04,
        }

    def test_product_type_match(self, strategy, config):
        assert strategy.calculate(make_ctx(config, amount=1000, product_type="software")) == Decimal('100.00')

    def test_category_match(self, strategy, config):
        ctx = make_ctx(config, amount=1000, product_type="consulting", product_category="services")
        assert strategy.calculate(ctx) == Decimal('20.00')

    def test_default_rate(self, strategy, config):
        """Products with no match fall back to the default rate."""
        assert strategy.calculate(make_ctx(config, amount=1000, product_type="hardware")) == Decimal('40.00')
        assert strategy.calculate(make_ctx({"products": []}, amount=1000)) == Decimal('50.00')

    def test_validate(self, strategy, config):
        assert strategy.validate(config) is True
        assert strategy.validate({"products": [{"rate": 0.1}]}) is False
        assert strategy.validate({}) is False


class TestPerformanceGate:
    """Test hard and soft performance gates."""

    @pytest.fixture
    def strategy(self):
        return PerformanceGateStrategy()

    def test_failed_hard_gate_zeroes_commission(self, strategy):
        config = {"gates": [
            {"metric": "total_sales", "operator": ">=", "value": 0},
            {"metric": "quota_attainment", "operator": ">=", "value": 100},
        ]}
        ctx = make_ctx(config, base_commission=5000, attainment=50)
        assert strategy.calculate(ctx) == Decimal('0')

    def test_all_gates_pass(self, strategy):
        config = {"gates": [{"metric": "quota_attainment", "operator": ">=", "value": 80}]}
        ctx = make_ctx(config, base_commission=5000, attainment=90)
        assert strategy.calculate(ctx) == Decimal('5000')

    def test_percentage_reduction(self, strategy):
        config = {"gates": [{
            "metric": "quota_attainment", "operator": ">=", "value": 80,
            "penalty_type": "percentage_reduction", "penalty_value": 25,
        }]}
        ctx = make_ctx(config, base_commission=4000, attainment=50)
        assert strategy.calculate(ctx) == Decimal('3000')

    def test_soft_gate_only_warns(self, strategy):
        """A soft gate logs a warning and leaves the commission unchanged."""
        config = {"gates": [{"metric": "quota_attainment", "operator": ">=", "value": 80, "enforcement": "soft"}]}
        ctx = make_ctx(config, base_commission=4000, attainment=50)
        assert strategy.calculate(ctx) == Decimal('4000')

    def test_unknown_metric_is_skipped(self, strategy):
        config = {"gates": [{"metric": "nps_score", "operator": ">=", "value": 80}]}
        assert strategy.calculate(make_ctx(config, base_commission=4000)) == Decimal('4000')

    def test_validate(self, strategy):
        assert strategy.validate({"gates": [{"metric": "deal_count", "operator": ">", "value": 3}]}) is True
        assert strategy.validate({"gates": [{"metric": "nps_score", "operator": ">", "value": 3}]}) is False
        assert strategy.validate({"gates": []}) is False


class TestTeamSplit:
    """Test commission splits across recipients."""

    @pytest.fixture
    def strategy(self):
        return TeamSplitStrategy()

    @pytest.fixture
    def splits(self):
        return [
            {"user_id": "u1", "role": "ae", "percentage": 60},
            {"user_id": "u2", "role": "se", "percentage": 40},
        ]

    def test_first_recipient_share(self, strategy, splits):
        assert strategy.calculate(make_ctx({"splits": splits}, base_commission=1000)) == Decimal('600')

    def test_no_splits(self, strategy):
        assert strategy.calculate(make_ctx({"splits": []}, base_commission=1000)) == Decimal('0')

    def test_breakdown(self, splits):
        shares = split_breakdown(Decimal('1000.01'), splits)
        assert [s["user_id"] for s in shares] == ["u1", "u2"]
        assert shares[0]["amount"] == Decimal('600.01')
        assert shares[1]["amount"] == Decimal('400.00')

    def test_validate(self, strategy, splits):
        assert strategy.validate({"splits": splits}) is True
        assert strategy.validate({"splits": [{"percentage": 0}]}) is False


class FlatFeeStrategy(CommissionStrategy):
    """Fixed fee per deal, used to exercise custom registration."""

    rule_type = "flat_fee"
    name = "Flat Fee"

    def calculate(self, ctx):
        return Decimal('250')

    def _validate_config(self, config):
        return True


class TestPluginRegistry:
    """Test strategy registration and lookup."""

    def test_builtins_registered(self):
        registry = PluginRegistry.with_builtins()
        assert set(registry.rule_types) == {
            "base_rate", "tiered", "bonus", "accelerator", "decelerator",
            "product_rate", "performance_gate", "team_split",
        }

    def test_register_custom_strategy(self):
        registry = PluginRegistry.with_builtins()
        registry.register(FlatFeeStrategy())
        assert "flat_fee" in registry
        assert registry.get("flat_fee").calculate(None) == Decimal('250')

    def test_register_under_other_key(self):
        registry = PluginRegistry()
        registry.register(FlatFeeStrategy(), "onboarding_fee")
        assert "onboarding_fee" in registry
        assert "flat_fee" not in registry

    def test_rejects_object_without_calculate(self):
        class NoCalculate:
            rule_type = "broken"

            def validate(self, config):
                return True

        with pytest.raises(TypeError, match="calculate"):
            PluginRegistry().register(NoCalculate())

    def test_unknown_type_returns_none(self):
        assert PluginRegistry.with_builtins().get("nope") is None
