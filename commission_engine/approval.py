"""
Commission Approval Workflow

Guarded state machine over CommissionRecord:

    calculated -> pending_review -> approved -> paid
         \\              \\             \\
          +--------------+-------------+--> rejected -> pending_review (review)

Every successful transition writes exactly one ApprovalEvent, committed
atomically with the record update and guarded by the record's version.
Illegal transitions raise and leave the record untouched.
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from .exceptions import (
    AuditTrailError,
    CommissionNotFoundError,
    InvalidActionError,
    InvalidAdjustmentError,
    InvalidTransitionError,
    MissingFieldError,
)
from .models import (
    ACTION_ADJUST_AND_APPROVE,
    ACTION_APPROVE,
    ACTION_CALCULATED,
    ACTION_PAY,
    ACTION_RECALCULATE,
    ACTION_REJECT,
    ACTION_REVIEW,
    STATUS_APPROVED,
    STATUS_CALCULATED,
    STATUS_NEW,
    STATUS_PAID,
    STATUS_PENDING_REVIEW,
    STATUS_REJECTED,
    ApprovalEvent,
    CalculationResult,
    CommissionRecord,
    Deal,
)
from .money import ZERO, format_money, quantize_money, to_decimal
from .store import CommissionStore

logger = logging.getLogger(__name__)

# action -> (statuses it is legal from, resulting status)
TRANSITIONS = {
    ACTION_CALCULATED: (frozenset({STATUS_NEW}), STATUS_CALCULATED),
    ACTION_REVIEW: (frozenset({STATUS_CALCULATED, STATUS_REJECTED}), STATUS_PENDING_REVIEW),
    ACTION_APPROVE: (frozenset({STATUS_CALCULATED, STATUS_PENDING_REVIEW}), STATUS_APPROVED),
    ACTION_REJECT: (
        frozenset({STATUS_CALCULATED, STATUS_PENDING_REVIEW, STATUS_APPROVED}),
        STATUS_REJECTED,
    ),
    ACTION_PAY: (frozenset({STATUS_APPROVED}), STATUS_PAID),
    ACTION_ADJUST_AND_APPROVE: (frozenset({STATUS_CALCULATED, STATUS_PENDING_REVIEW}), STATUS_APPROVED),
    ACTION_RECALCULATE: (
        frozenset({STATUS_CALCULATED, STATUS_PENDING_REVIEW, STATUS_APPROVED, STATUS_REJECTED}),
        STATUS_CALCULATED,
    ),
}

# Actions accepted by process_approval
APPROVAL_ACTIONS = (ACTION_REVIEW, ACTION_APPROVE, ACTION_REJECT, ACTION_PAY)

MIN_ADJUSTMENT_REASON_LENGTH = 10


def is_legal_transition(status: str, action: str) -> bool:
    allowed = TRANSITIONS.get(action)
    return allowed is not None and status in allowed[0]


def replay(events: list[ApprovalEvent]) -> str:
    """
    Rebuild a commission's status from its event history.

    Raises AuditTrailError if any event starts from the wrong status, uses
    an illegal edge, or lands on the wrong status.
    """
    status = STATUS_NEW
    for event in sorted(events, key=lambda e: e.performed_at):
        if event.previous_status != status:
            raise AuditTrailError(
                f"Event {event.id} starts from {event.previous_status}, expected {status}"
            )
        if not is_legal_transition(status, event.action):
            raise AuditTrailError(f"Event {event.id}: {event.action} is not legal from {status}")
        expected = TRANSITIONS[event.action][1]
        if event.new_status != expected:
            raise AuditTrailError(
                f"Event {event.id}: {event.action} should lead to {expected}, recorded {event.new_status}"
            )
        status = expected
    return status


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalStateMachine:
    """Validates and executes lifecycle transitions on commission records."""

    def __init__(self, store: CommissionStore, clock=None, id_factory=None):
        self.store = store
        self.clock = clock or _utcnow
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))

    # ------------------------------------------------------------------
    # Record creation
    # ------------------------------------------------------------------

    def record_calculation(
        self,
        deal: Deal,
        result: CalculationResult,
        actor_id: str | None = None,
        target: dict | None = None,
    ) -> CommissionRecord:
        """Create the 'calculated' record for a deal and its first audit event."""
        now = self.clock()
        target = target or {}
        actor = actor_id or deal.user_id
        record = CommissionRecord(
            id=self.id_factory(),
            status=STATUS_CALCULATED,
            commission_amount=result.total_commission,
            deal_id=deal.id,
            user_id=deal.user_id,
            company_id=deal.company_id,
            deal_amount=deal.amount,
            target_id=target.get("id"),
            target_name=target.get("name"),
            period_start=target.get("period_start") or deal.close_date,
            period_end=target.get("period_end") or deal.close_date,
            calculated_at=now,
            calculated_by=actor,
            applied_rules=list(result.applied_rules),
        )
        event = self._event(
            record.id,
            ACTION_CALCULATED,
            actor,
            STATUS_NEW,
            STATUS_CALCULATED,
            metadata={"applied_rules": list(result.applied_rules)},
        )
        stored = self.store.add(record, event)
        logger.info(f"Commission {stored.id} calculated: {format_money(stored.commission_amount)}")
        return stored

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def process_approval(
        self,
        commission_id: str,
        action: str,
        actor_id: str,
        notes: str | None = None,
        payment_reference: str | None = None,
    ) -> CommissionRecord:
        """
        Apply review / approve / reject / pay to a commission.

        Raises:
            InvalidActionError: action is not one of the four approval actions
            CommissionNotFoundError: no such commission
            InvalidTransitionError: action not legal from the current status
            MissingFieldError: pay without a payment reference
        """
        if action not in APPROVAL_ACTIONS:
            raise InvalidActionError(action)

        record = self._load(commission_id)
        self._check_transition(record, action)

        now = self.clock()
        new_status = TRANSITIONS[action][1]
        changes = {"status": new_status}
        metadata = {}
        event_notes = notes

        if action == ACTION_REVIEW:
            changes.update(reviewed_at=now, reviewed_by=actor_id)
        elif action == ACTION_APPROVE:
            changes.update(approved_at=now, approved_by=actor_id)
        elif action == ACTION_REJECT:
            changes.update(rejection_reason=notes)
        elif action == ACTION_PAY:
            reference = payment_reference or notes
            if not reference:
                raise MissingFieldError("payment_reference", action)
            changes.update(paid_at=now, paid_by=actor_id, payment_reference=reference)
            metadata["payment_reference"] = reference
            event_notes = notes or reference

        return self._commit(record, replace(record, **changes), action, actor_id, event_notes, metadata)

    def process_adjust_and_approve(
        self,
        commission_id: str,
        new_amount,
        reason: str,
        actor_id: str,
    ) -> CommissionRecord:
        """
        Overwrite the amount with ``new_amount`` (a new total, not a delta)
        and approve in one transition. The first pre-adjustment amount is
        kept in original_amount.
        """
        if not reason or len(reason.strip()) < MIN_ADJUSTMENT_REASON_LENGTH:
            raise InvalidAdjustmentError(
                f"adjustment_reason must be at least {MIN_ADJUSTMENT_REASON_LENGTH} characters"
            )

        record = self._load(commission_id)
        self._check_transition(record, ACTION_ADJUST_AND_APPROVE)

        amount = to_decimal(new_amount)
        if amount < ZERO:
            raise InvalidAdjustmentError("Adjusted amount cannot be negative")
        amount = quantize_money(amount)

        now = self.clock()
        original = record.original_amount if record.original_amount is not None else record.commission_amount
        updated = replace(
            record,
            status=STATUS_APPROVED,
            original_amount=original,
            commission_amount=amount,
            adjustment_reason=reason,
            adjusted_by=actor_id,
            adjusted_at=now,
            approved_at=now,
            approved_by=actor_id,
        )
        metadata = {
            "previous_amount": record.commission_amount,
            "adjusted_amount": amount,
            "original_amount": original,
        }
        return self._commit(
            record,
            updated,
            ACTION_ADJUST_AND_APPROVE,
            actor_id,
            f"Adjusted and approved: {reason}",
            metadata,
        )

    def recalculate(
        self,
        commission_id: str,
        result: CalculationResult,
        actor_id: str,
        notes: str | None = "Manual recalculation requested",
    ) -> CommissionRecord:
        """Replace the amount with a fresh calculation and return the record to 'calculated'."""
        record = self._load(commission_id)
        self._check_transition(record, ACTION_RECALCULATE)

        updated = replace(
            record,
            status=STATUS_CALCULATED,
            commission_amount=result.total_commission,
            applied_rules=list(result.applied_rules),
            calculated_at=self.clock(),
            calculated_by=actor_id,
        )
        metadata = {
            "old_amount": record.commission_amount,
            "new_amount": result.total_commission,
            "applied_rules": list(result.applied_rules),
        }
        return self._commit(record, updated, ACTION_RECALCULATE, actor_id, notes, metadata)

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    def get_history(self, commission_id: str) -> list[ApprovalEvent]:
        self._load(commission_id)
        return self.store.history(commission_id)

    def verify_history(self, commission_id: str) -> str:
        """Replay the history and check it ends at the record's current status."""
        record = self._load(commission_id)
        status = replay(self.store.history(commission_id))
        if status != record.status:
            raise AuditTrailError(
                f"History of {commission_id} ends at {status}, record is {record.status}"
            )
        return status

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, commission_id: str) -> CommissionRecord:
        record = self.store.get(commission_id)
        if record is None:
            raise CommissionNotFoundError(commission_id)
        return record

    @staticmethod
    def _check_transition(record: CommissionRecord, action: str) -> None:
        if not is_legal_transition(record.status, action):
            raise InvalidTransitionError(action, record.status)

    def _commit(
        self,
        original: CommissionRecord,
        updated: CommissionRecord,
        action: str,
        actor_id: str,
        notes: str | None,
        metadata: dict,
    ) -> CommissionRecord:
        event = self._event(original.id, action, actor_id, original.status, updated.status, notes, metadata)
        stored = self.store.commit(updated, event, expected_version=original.version)
        logger.info(f"Commission {stored.id} {action}: {original.status} -> {stored.status} by {actor_id}")
        return stored

    def _event(
        self,
        commission_id: str,
        action: str,
        actor_id: str | None,
        previous_status: str,
        new_status: str,
        notes: str | None = None,
        metadata: dict | None = None,
    ) -> ApprovalEvent:
        return ApprovalEvent(
            id=self.id_factory(),
            commission_id=commission_id,
            action=action,
            performed_by=actor_id,
            previous_status=previous_status,
            new_status=new_status,
            performed_at=self.clock(),
            notes=notes,
            metadata=metadata or {},
        )
