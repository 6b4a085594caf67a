"""
Bulk approval.

Applies one action to many commissions. The whole batch is refused up front
if any id is missing, out of scope or not actionable; after that each item
is processed on its own and failures are collected, not raised.
"""

import logging

from .approval import ApprovalStateMachine
from .exceptions import BatchValidationError, CommissionEngineError, InvalidActionError
from .models import ACTION_APPROVE, ACTION_REJECT, STATUS_CALCULATED, STATUS_PENDING_REVIEW, BatchResult

logger = logging.getLogger(__name__)

BULK_ACTIONS = (ACTION_APPROVE, ACTION_REJECT)
ACTIONABLE_STATUSES = (STATUS_CALCULATED, STATUS_PENDING_REVIEW)


class BatchCoordinator:
    """Runs bulk approve/reject through the approval state machine."""

    def __init__(self, state_machine: ApprovalStateMachine):
        self.state_machine = state_machine

    def process_bulk_approval(
        self,
        commission_ids: list[str],
        action: str,
        actor_id: str,
        notes: str | None = None,
        company_id: str | None = None,
    ) -> BatchResult:
        """
        Approve or reject every commission in ``commission_ids``.

        Raises:
            InvalidActionError: action is not approve/reject
            BatchValidationError: some ids are missing, outside ``company_id``
                or not in an actionable status (nothing is processed)
        """
        if action not in BULK_ACTIONS:
            raise InvalidActionError(action)
        if not commission_ids:
            raise BatchValidationError("commission_ids must not be empty", [])

        eligible = self.state_machine.store.find(commission_ids, company_id=company_id, statuses=ACTIONABLE_STATUSES)
        if len(eligible) != len(commission_ids):
            eligible_ids = {record.id for record in eligible}
            ineligible = [cid for cid in commission_ids if cid not in eligible_ids]
            logger.warning(f"Bulk {action} refused: {len(ineligible)} of {len(commission_ids)} ids not eligible")
            raise BatchValidationError(
                "Some commissions not found or not eligible for bulk action",
                ineligible,
            )

        result = BatchResult(action=action)
        for commission_id in commission_ids:
            try:
                updated = self.state_machine.process_approval(commission_id, action, actor_id, notes)
                result.results.append({"id": commission_id, "success": True, "status": updated.status})
            except CommissionEngineError as e:
                logger.error(f"Bulk {action} failed for {commission_id}: {str(e)}")
                result.errors.append({"id": commission_id, "success": False, "error": str(e)})

        logger.info(f"Bulk {action}: processed {result.processed}, {len(result.errors)} errors")
        return result
