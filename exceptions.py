"""
Typed errors raised by the reservation core.

Every failure a caller can act on is a ReservationError subclass carrying the
context needed to build a message for the transport layer above.
PricingInvariantError is deliberately outside that hierarchy: it signals
corrupt policy data, not a user mistake.
"""


class ReservationError(Exception):
    """Base exception for reservation errors."""
    pass


class NotFoundError(ReservationError):
    """Raised when a client, destination, equipment, policy or reservation does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidRangeError(ReservationError):
    """Raised when a start date is after its end date (or a date is missing)."""

    def __init__(self, start, end, reason: str = None):
        self.start = start
        self.end = end
        self.reason = reason or f"Start date {start} is after end date {end}"
        super().__init__(self.reason)


class PastDateError(ReservationError):
    """Raised when a booking would start before today."""

    def __init__(self, start, today):
        self.start = start
        self.today = today
        super().__init__(f"Start date {start} is before today ({today})")


class UnavailableError(ReservationError):
    """Raised for equipment flagged unavailable or an empty equipment list."""

    def __init__(self, message: str, equipment_id: int = None):
        self.equipment_id = equipment_id
        super().__init__(message)


class ConflictError(ReservationError):
    """Raised on overlapping bookings or when the store rejects a concurrent write."""

    def __init__(self, message: str, equipment_id: int = None, retryable: bool = False):
        self.equipment_id = equipment_id
        self.retryable = retryable
        super().__init__(message)


class IllegalTransitionError(ReservationError):
    """Raised when the reservation state machine forbids an operation."""

    def __init__(self, from_state: str, to_state: str, reason: str = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason or f"Cannot transition from '{from_state}' to '{to_state}'"
        super().__init__(self.reason)


class PolicyValidationError(ReservationError):
    """Raised when pricing policy input is invalid."""
    pass


class PricingInvariantError(Exception):
    """Raised when stored policy data breaks an invariant the pricing engine relies on."""
    pass
