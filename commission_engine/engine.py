"""
Commission Engine

Wires the calculation pipeline and approval workflow together. Build one
at start-up and hand it to whatever layer serves requests.
"""

from .approval import ApprovalStateMachine
from .batch import BatchCoordinator
from .calculator import CommissionCalculator
from .conditions import ConditionEvaluator
from .config import EngineSettings
from .models import BatchResult, CalculationContext, CalculationResult, CommissionRecord, CommissionRule, Deal
from .store import CommissionStore, InMemoryCommissionStore
from .strategies import PluginRegistry
from .validators import RuleValidator


class CommissionEngine:
    """
    Entry point for the outer service layer.

    Extra strategies are registered here, before any calculation runs.
    """

    def __init__(
        self,
        store: CommissionStore | None = None,
        settings: EngineSettings | None = None,
        extra_strategies: dict | None = None,
        clock=None,
    ):
        self.settings = settings or EngineSettings()
        self.registry = PluginRegistry.with_builtins()
        for rule_type, strategy in (extra_strategies or {}).items():
            self.registry.register(strategy, rule_type)

        evaluator = ConditionEvaluator()
        self.store = store or InMemoryCommissionStore()
        self.calculator = CommissionCalculator(self.registry, self.settings, evaluator)
        self.validator = RuleValidator(self.registry, evaluator)
        self.approvals = ApprovalStateMachine(self.store, clock=clock)
        self.batches = BatchCoordinator(self.approvals)

    def calculate_commission(
        self,
        deal: Deal,
        rules: list[CommissionRule],
        context: CalculationContext | None = None,
    ) -> CalculationResult:
        return self.calculator.calculate(deal, rules, context)

    def validate_rule(self, rule: CommissionRule) -> None:
        self.validator.validate(rule)

    def record_calculation(self, deal: Deal, result: CalculationResult, actor_id=None, target=None) -> CommissionRecord:
        return self.approvals.record_calculation(deal, result, actor_id, target)

    def process_approval(self, commission_id: str, action: str, actor_id: str, notes=None, payment_reference=None) -> CommissionRecord:
        return self.approvals.process_approval(commission_id, action, actor_id, notes, payment_reference)

    def process_adjust_and_approve(self, commission_id: str, new_amount, reason: str, actor_id: str) -> CommissionRecord:
        return self.approvals.process_adjust_and_approve(commission_id, new_amount, reason, actor_id)

    def process_bulk_approval(self, commission_ids, action: str, actor_id: str, notes=None, company_id=None) -> BatchResult:
        return self.batches.process_bulk_approval(commission_ids, action, actor_id, notes, company_id)

    def recalculate(self, commission_id: str, deal: Deal, rules: list[CommissionRule], context=None, actor_id=None) -> CommissionRecord:
        """Re-run the pipeline for a stored commission and reset it to 'calculated'."""
        result = self.calculator.calculate(deal, rules, context)
        return self.approvals.recalculate(commission_id, result, actor_id)
