"""
Domain Models for the Commission Engine

These dataclasses provide type-safe representations of deals, rules,
calculation results and the commission approval lifecycle.
All monetary values use Decimal for precision.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from .money import HUNDRED, ZERO, to_decimal

# =============================================================================
# CONSTANTS
# =============================================================================

# Commission statuses
STATUS_NEW = "new"  # only ever appears as previous_status of the first event
STATUS_CALCULATED = "calculated"
STATUS_PENDING_REVIEW = "pending_review"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_PAID = "paid"

COMMISSION_STATUSES = (
    STATUS_CALCULATED,
    STATUS_PENDING_REVIEW,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_PAID,
)

# Approval actions
ACTION_CALCULATED = "calculated"
ACTION_REVIEW = "review"
ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"
ACTION_PAY = "pay"
ACTION_ADJUST_AND_APPROVE = "adjust_and_approve"
ACTION_RECALCULATE = "recalculate"

# Merge strategies
CALC_CUMULATIVE = "cumulative"
CALC_REPLACE = "replace"
CALC_MAX = "max"
CALCULATION_TYPES = (CALC_CUMULATIVE, CALC_REPLACE, CALC_MAX)
# Accepted on rule definitions for compatibility, merged cumulatively
LEGACY_CALCULATION_TYPES = ("percentage", "fixed", "graduated")

TIER_TYPES = ("graduated", "cliff", "cumulative")


def parse_date(value) -> date | None:
    """Parse 'YYYY-MM-DD' (or an ISO datetime string) into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if len(text) > 10:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return datetime.strptime(text, "%Y-%m-%d").date()


def _optional_decimal(value) -> Decimal | None:
    return to_decimal(value) if value is not None and value != "" else None


def _average_deal_size(sales: Decimal, deal_count: int | None, supplied) -> Decimal | None:
    """Supplied value if any, else sales / deal_count for a positive count."""
    if supplied is not None and supplied != "":
        return to_decimal(supplied)
    if deal_count and deal_count > 0:
        return sales / Decimal(deal_count)
    return None


_TRUE_STRINGS = ("true", "1", "yes")
_FALSE_STRINGS = ("false", "0", "no")


def parse_flag(value, default: bool, field_name: str) -> bool:
    """Read a boolean flag from JSON. Null means the default."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"{field_name} must be a boolean, got: {value!r}")


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass
class Deal:
    """A closed sales deal. Read-only to the engine."""

    amount: Decimal
    close_date: date | None = None
    id: str | None = None
    name: str | None = None
    product_type: str | None = None
    product_category: str | None = None
    stage: str | None = None
    user_id: str | None = None
    company_id: str | None = None
    # Any other fields supplied by the CRM, reachable from conditions via paths
    attributes: dict = field(default_factory=dict)

    def as_fact(self) -> dict:
        """Deal fields as a plain dict for condition evaluation."""
        fact = dict(self.attributes)
        fact.update(
            {
                "id": self.id,
                "name": self.name,
                "amount": self.amount,
                "close_date": self.close_date,
                "product_type": self.product_type,
                "product_category": self.product_category,
                "stage": self.stage,
                "user_id": self.user_id,
                "company_id": self.company_id,
            }
        )
        return fact

    @classmethod
    def from_dict(cls, data: dict) -> "Deal":
        if data.get("amount") is None:
            raise ValueError("deal.amount is required")
        return cls(
            amount=to_decimal(data["amount"]),
            close_date=parse_date(data.get("close_date")),
            id=data.get("id"),
            name=data.get("name") or data.get("deal_name"),
            product_type=data.get("product_type"),
            product_category=data.get("product_category"),
            stage=data.get("stage"),
            user_id=data.get("user_id"),
            company_id=data.get("company_id"),
            attributes=dict(data),
        )


@dataclass
class Tier:
    """A single threshold band of a tiered rule."""

    tier_number: int
    threshold_min: Decimal
    threshold_max: Decimal | None  # None = open-ended
    rate: Decimal
    type: str | None = None  # falls back to the rule config's "type"

    def to_dict(self) -> dict:
        return {
            "tier_number": self.tier_number,
            "threshold_min": self.threshold_min,
            "threshold_max": self.threshold_max,
            "rate": self.rate,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: dict, position: int = 0) -> "Tier":
        return cls(
            tier_number=int(data.get("tier_number", position + 1)),
            threshold_min=to_decimal(data.get("threshold_min"), ZERO),
            threshold_max=_optional_decimal(data.get("threshold_max")),
            rate=to_decimal(data["rate"]),
            type=data.get("type"),
        )


@dataclass
class CommissionRule:
    """A configured strategy that computes or modifies a commission."""

    id: str | None
    name: str
    rule_type: str
    priority: int = 100
    config: dict = field(default_factory=dict)
    conditions: dict | None = None
    calculation_type: str = CALC_CUMULATIVE
    effective_from: date | None = None
    effective_to: date | None = None
    is_active: bool = True
    stops_processing: bool = False
    tiers: list[Tier] = field(default_factory=list)
    description: str | None = None
    company_id: str | None = None

    @property
    def strategy_config(self) -> dict:
        """Config handed to the strategy, with the rule's tiers merged in."""
        if not self.tiers:
            return self.config
        ordered = sorted(self.tiers, key=lambda t: t.tier_number)
        return {**self.config, "tiers": [t.to_dict() for t in ordered]}

    def is_effective_on(self, on_date: date | None) -> bool:
        """Active flag plus the inclusive [effective_from, effective_to] window."""
        if not self.is_active:
            return False
        if on_date is None:
            return True
        if self.effective_from is not None and on_date < self.effective_from:
            return False
        if self.effective_to is not None and on_date > self.effective_to:
            return False
        return True

    @classmethod
    def from_dict(cls, data: dict) -> "CommissionRule":
        tiers = [Tier.from_dict(t, i) for i, t in enumerate(data.get("tiers") or [])]
        return cls(
            id=data.get("id"),
            name=data.get("name") or data.get("rule_type", ""),
            rule_type=data["rule_type"],
            priority=int(data.get("priority", 100)),
            config=dict(data.get("config") or {}),
            conditions=data.get("conditions"),
            calculation_type=data.get("calculation_type") or CALC_CUMULATIVE,
            effective_from=parse_date(data.get("effective_from")),
            effective_to=parse_date(data.get("effective_to")),
            is_active=parse_flag(data.get("is_active"), True, "is_active"),
            stops_processing=parse_flag(data.get("stops_processing"), False, "stops_processing"),
            tiers=tiers,
            description=data.get("description"),
            company_id=data.get("company_id"),
        )


@dataclass
class CalculationContext:
    """Facts about the salesperson and period that rules are evaluated against."""

    user: dict | None = None
    company: dict | None = None
    period: dict | None = None
    user_sales_total: Decimal = ZERO
    attainment_percentage: Decimal = ZERO
    deal_count: int | None = None
    average_deal_size: Decimal | None = None
    target: dict | None = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def for_target(
        cls,
        user_sales_total,
        quota_amount=None,
        deal_count: int | None = None,
        average_deal_size=None,
        **kwargs,
    ) -> "CalculationContext":
        """Derive attainment and average deal size from period totals.

        Attainment is userSalesTotal / quota x 100 for a positive quota, else 0.
        """
        sales = to_decimal(user_sales_total, ZERO)
        quota = to_decimal(quota_amount, ZERO)
        attainment = (sales / quota) * HUNDRED if quota > 0 else ZERO
        return cls(
            user_sales_total=sales,
            attainment_percentage=attainment,
            deal_count=deal_count,
            average_deal_size=_average_deal_size(sales, deal_count, average_deal_size),
            **kwargs,
        )

    def facts(self, deal: Deal) -> dict:
        """Fact map for the condition evaluator."""
        facts = dict(self.extra)
        facts.update(
            {
                "deal": deal.as_fact(),
                "user": self.user,
                "company": self.company,
                "period": self.period,
                "target": self.target,
                "userSalesTotal": self.user_sales_total,
                "attainmentPercentage": self.attainment_percentage,
                "dealCount": self.deal_count,
                "averageDealSize": self.average_deal_size,
            }
        )
        return facts

    def for_rule(self, deal: Deal, config: dict, base_commission: Decimal) -> "StrategyContext":
        return StrategyContext(
            deal=deal,
            config=config,
            base_commission=base_commission,
            user_sales_total=self.user_sales_total,
            attainment_percentage=self.attainment_percentage,
            deal_count=self.deal_count,
            average_deal_size=self.average_deal_size,
            user=self.user,
            company=self.company,
            period=self.period,
        )

    @classmethod
    def from_dict(cls, data: dict | None) -> "CalculationContext":
        data = dict(data or {})

        def pop(camel, snake):
            camel_value = data.pop(camel, None)
            snake_value = data.pop(snake, None)
            return camel_value if camel_value is not None else snake_value

        user_sales_total = to_decimal(pop("userSalesTotal", "user_sales_total"), ZERO)
        attainment = pop("attainmentPercentage", "attainment_percentage")
        deal_count = pop("dealCount", "deal_count")
        deal_count = int(deal_count) if deal_count is not None else None
        average = pop("averageDealSize", "average_deal_size")
        return cls(
            user=data.pop("user", None),
            company=data.pop("company", None),
            period=data.pop("period", None),
            target=data.pop("target", None),
            user_sales_total=user_sales_total,
            attainment_percentage=to_decimal(attainment, ZERO),
            deal_count=deal_count,
            average_deal_size=_average_deal_size(user_sales_total, deal_count, average),
            extra=data,
        )


@dataclass
class StrategyContext:
    """What a strategy sees for a single rule invocation."""

    deal: Deal
    config: dict
    base_commission: Decimal  # running total before this rule
    user_sales_total: Decimal = ZERO
    attainment_percentage: Decimal = ZERO
    deal_count: int | None = None
    average_deal_size: Decimal | None = None
    user: dict | None = None
    company: dict | None = None
    period: dict | None = None


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class AppliedRule:
    """One entry of the calculation trace."""

    rule_id: str | None
    rule_name: str
    rule_type: str
    commission_amount: Decimal
    priority: int | None = None
    calculation_type: str | None = None


@dataclass
class CalculationResult:
    """Final output of a pipeline run."""

    total_commission: Decimal
    applied_rules: list[AppliedRule]
    calculation_timestamp: datetime
    rounding_policy: str = "per_rule"


# =============================================================================
# APPROVAL LIFECYCLE MODELS
# =============================================================================


@dataclass
class CommissionRecord:
    """A persisted commission. Mutated only through the approval state machine."""

    id: str
    status: str
    commission_amount: Decimal
    deal_id: str | None = None
    user_id: str | None = None
    company_id: str | None = None
    deal_amount: Decimal | None = None
    original_amount: Decimal | None = None
    adjustment_reason: str | None = None
    adjusted_by: str | None = None
    adjusted_at: datetime | None = None
    rejection_reason: str | None = None
    target_id: str | None = None
    target_name: str | None = None
    period_start: date | None = None
    period_end: date | None = None
    calculated_at: datetime | None = None
    calculated_by: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    paid_at: datetime | None = None
    paid_by: str | None = None
    payment_reference: str | None = None
    applied_rules: list[AppliedRule] = field(default_factory=list)
    version: int = 0


@dataclass(frozen=True)
class ApprovalEvent:
    """Immutable audit record of one state transition."""

    id: str
    commission_id: str
    action: str
    performed_by: str | None
    previous_status: str
    new_status: str
    performed_at: datetime
    notes: str | None = None
    metadata: dict = field(default_factory=dict)


@dataclass
class BatchResult:
    """Outcome of a bulk approval action."""

    action: str
    results: list[dict] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0
