"""
Output Builder

Converts engine results into JSON-safe dicts for API responses and for
callers that persist them. Money is rendered as fixed two-place strings.
"""

from datetime import date, datetime
from decimal import Decimal

from .models import AppliedRule, ApprovalEvent, BatchResult, CalculationResult, CommissionRecord, CommissionRule
from .money import format_money


def to_money(value: Decimal | None) -> str | None:
    """Decimal -> '1234.50' (None passes through)."""
    if value is None:
        return None
    return format_money(value)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _json_safe(value):
    """Render nested metadata (Decimals, dates) as JSON-safe values."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, AppliedRule):
        return OutputBuilder.applied_rule(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


class OutputBuilder:
    """Builds API-facing dicts from engine objects."""

    @staticmethod
    def applied_rule(rule: AppliedRule) -> dict:
        return {
            "rule_id": rule.rule_id,
            "rule_name": rule.rule_name,
            "rule_type": rule.rule_type,
            "commission_amount": to_money(rule.commission_amount),
        }

    def calculation(self, result: CalculationResult) -> dict:
        return {
            "total_commission": to_money(result.total_commission),
            "applied_rules": [self.applied_rule(r) for r in result.applied_rules],
            "calculation_timestamp": _iso(result.calculation_timestamp),
            "rounding_policy": result.rounding_policy,
        }

    def breakdown(self, result: CalculationResult) -> list[dict]:
        """Per-rule view used by rule previews."""
        return [
            {
                "rule_name": r.rule_name,
                "rule_type": r.rule_type,
                "priority": r.priority,
                "calculation_type": r.calculation_type,
                "commission": to_money(r.commission_amount),
            }
            for r in result.applied_rules
        ]

    def rule(self, rule: CommissionRule) -> dict:
        return {
            "id": rule.id,
            "name": rule.name,
            "rule_type": rule.rule_type,
            "priority": rule.priority,
            "config": _json_safe(rule.config),
            "conditions": rule.conditions,
            "calculation_type": rule.calculation_type,
            "effective_from": _iso(rule.effective_from),
            "effective_to": _iso(rule.effective_to),
            "is_active": rule.is_active,
            "stops_processing": rule.stops_processing,
            "tiers": [_json_safe(t.to_dict()) for t in rule.tiers],
        }

    def record(self, record: CommissionRecord) -> dict:
        return {
            "id": record.id,
            "status": record.status,
            "commission_amount": to_money(record.commission_amount),
            "original_amount": to_money(record.original_amount),
            "deal_id": record.deal_id,
            "user_id": record.user_id,
            "company_id": record.company_id,
            "deal_amount": to_money(record.deal_amount),
            "adjustment_reason": record.adjustment_reason,
            "adjusted_by": record.adjusted_by,
            "adjusted_at": _iso(record.adjusted_at),
            "rejection_reason": record.rejection_reason,
            "target_id": record.target_id,
            "target_name": record.target_name,
            "period_start": _iso(record.period_start),
            "period_end": _iso(record.period_end),
            "calculated_at": _iso(record.calculated_at),
            "calculated_by": record.calculated_by,
            "reviewed_at": _iso(record.reviewed_at),
            "reviewed_by": record.reviewed_by,
            "approved_at": _iso(record.approved_at),
            "approved_by": record.approved_by,
            "paid_at": _iso(record.paid_at),
            "paid_by": record.paid_by,
            "payment_reference": record.payment_reference,
            "applied_rules": [self.applied_rule(r) for r in record.applied_rules],
            "version": record.version,
        }

    def event(self, event: ApprovalEvent) -> dict:
        return {
            "id": event.id,
            "commission_id": event.commission_id,
            "action": event.action,
            "performed_by": event.performed_by,
            "previous_status": event.previous_status,
            "new_status": event.new_status,
            "notes": event.notes,
            "metadata": _json_safe(event.metadata),
            "performed_at": _iso(event.performed_at),
        }

    def batch(self, result: BatchResult) -> dict:
        return {
            "success": result.success,
            "processed": result.processed,
            "results": result.results,
            "errors": result.errors,
            "message": f"Processed {result.processed} commissions, {len(result.errors)} errors",
        }
