"""Exception hierarchy for the amortization engine."""

from datetime import date


class RecoveryPlanError(Exception):
    """Base exception for all engine errors."""


class ValidationError(RecoveryPlanError, ValueError):
    """Raised when plan, payment or rate input is invalid."""


class RateResolutionError(RecoveryPlanError):
    """Raised when interest is required but no usable rate could be resolved."""

    def __init__(self, rate_type: str, reference_date: date | None, message: str | None = None):
        self.rate_type = rate_type
        self.reference_date = reference_date
        if message is None:
            on = reference_date.isoformat() if reference_date else "n/a"
            message = f"No {rate_type} rate found for {on}"
        super().__init__(message)


class StateConflictError(RecoveryPlanError):
    """Raised when an operation is not allowed in the entity's current state."""

    def __init__(self, message: str, current_state: str):
        self.current_state = current_state
        super().__init__(f"{message} (current state: {current_state})")


class NotFoundError(RecoveryPlanError, LookupError):
    """Raised when a referenced plan, installment or rate does not exist."""

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")
