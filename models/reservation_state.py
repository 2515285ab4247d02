"""
Reservation state machine.
Defines the reservation states, which of them block equipment, and the legal transitions.
"""

from exceptions import IllegalTransitionError


# =============================================================================
# CONSTANTS
# =============================================================================

STATE_PENDING = 'PENDING'
STATE_CONFIRMED = 'CONFIRMED'
STATE_IN_PROGRESS = 'IN_PROGRESS'
STATE_FINISHED = 'FINISHED'
STATE_CANCELLED = 'CANCELLED'

RESERVATION_STATES = (
    STATE_PENDING,
    STATE_CONFIRMED,
    STATE_IN_PROGRESS,
    STATE_FINISHED,
    STATE_CANCELLED,
)

# States that still hold their equipment
ACTIVE_STATES = (STATE_PENDING, STATE_CONFIRMED, STATE_IN_PROGRESS)

TERMINAL_STATES = (STATE_FINISHED, STATE_CANCELLED)

# States the scheduled sweep advances by date
SWEEP_STATES = (STATE_CONFIRMED, STATE_IN_PROGRESS)

VALID_TRANSITIONS = {
    STATE_PENDING: [STATE_CONFIRMED, STATE_CANCELLED],
    STATE_CONFIRMED: [STATE_IN_PROGRESS, STATE_FINISHED, STATE_CANCELLED],
    STATE_IN_PROGRESS: [STATE_FINISHED, STATE_CANCELLED],
    STATE_FINISHED: [],
    STATE_CANCELLED: [],
}


# =============================================================================
# TRANSITIONS
# =============================================================================

def get_allowed_transitions(current_state: str) -> list:
    """
    Get the states a reservation may move to.

    Args:
        current_state: Current state name

    Returns:
        list: Allowed target states (empty for terminal states)
    """
    if current_state not in VALID_TRANSITIONS:
        raise ValueError(f"Unknown reservation state: {current_state}")
    return list(VALID_TRANSITIONS[current_state])


def validate_transition(current_state: str, new_state: str) -> None:
    """
    Check that a state change is legal.

    Raises:
        IllegalTransitionError: If new_state is not reachable from current_state
    """
    allowed = get_allowed_transitions(current_state)
    if new_state not in allowed:
        if allowed:
            reason = (f"Cannot change reservation from {current_state} to {new_state}. "
                      f"Allowed transitions: {', '.join(allowed)}")
        else:
            reason = f"Reservation is {current_state}; no further transitions are allowed"
        raise IllegalTransitionError(current_state, new_state, reason)


def is_modifiable(state: str) -> bool:
    """Whether dates, client or equipment may still be edited."""
    return state not in TERMINAL_STATES


def sweep_target(state: str, start_date, end_date, today):
    """
    Decide where the sweep should move a reservation today.

    A CONFIRMED booking whose period has begun (start <= today < end) starts;
    any CONFIRMED or IN_PROGRESS booking whose end date has been reached finishes.

    Returns:
        str or None: Target state, or None if nothing should change
    """
    if state not in SWEEP_STATES:
        return None
    if today >= end_date:
        return STATE_FINISHED
    if start_date <= today < end_date and state == STATE_CONFIRMED:
        return STATE_IN_PROGRESS
    return None
