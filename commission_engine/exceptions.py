"""
Typed errors raised by the commission engine.

Every error subclasses ValueError so callers that already treat ValueError
as a client error keep working. ``code`` is a stable machine-readable key.
"""


class CommissionEngineError(ValueError):
    """Base class for all engine errors."""

    code = "COMMISSION_ENGINE_ERROR"


class InvalidRuleError(CommissionEngineError):
    """A rule definition failed validation."""

    code = "INVALID_RULE"

    def __init__(self, message: str, rule_type: str | None = None):
        super().__init__(message)
        self.rule_type = rule_type


class CommissionNotFoundError(CommissionEngineError):
    code = "COMMISSION_NOT_FOUND"

    def __init__(self, commission_id: str):
        super().__init__(f"Commission not found: {commission_id}")
        self.commission_id = commission_id


class InvalidActionError(CommissionEngineError):
    code = "INVALID_ACTION"

    def __init__(self, action: str):
        super().__init__(f"Invalid action: {action}")
        self.action = action


class InvalidTransitionError(CommissionEngineError):
    """The action is not legal from the commission's current status."""

    code = "INVALID_TRANSITION"

    def __init__(self, action: str, status: str):
        label = action.replace("_", " ")
        super().__init__(f"Cannot {label} commission in {status} status")
        self.action = action
        self.status = status


class InvalidAdjustmentError(CommissionEngineError):
    code = "INVALID_ADJUSTMENT"


class MissingFieldError(CommissionEngineError):
    code = "MISSING_FIELD"

    def __init__(self, field_name: str, action: str):
        super().__init__(f"{field_name} is required for {action}")
        self.field_name = field_name
        self.action = action


class ConcurrentModificationError(CommissionEngineError):
    """The record changed between read and write."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, commission_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Commission {commission_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.commission_id = commission_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class BatchValidationError(CommissionEngineError):
    """Bulk pre-validation failed; nothing was processed."""

    code = "BATCH_VALIDATION_FAILED"

    def __init__(self, message: str, ineligible_ids: list[str]):
        super().__init__(message)
        self.ineligible_ids = ineligible_ids


class AuditTrailError(CommissionEngineError):
    """An approval history does not describe a legal path."""

    code = "AUDIT_TRAIL_INVALID"
