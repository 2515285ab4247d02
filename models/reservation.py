"""
Reservation store.
Single entry point for reservation persistence, re-exporting the split modules:
- reservation_state.py: States and transitions
- reservation_crud.py: Inserts and updates
- reservation_queries.py: Listing, overlap detection and counts

The lifecycle service receives this module as its reservation store.
"""

from database import transaction as atomic

# State machine
from .reservation_state import (
    # Constants
    STATE_PENDING,
    STATE_CONFIRMED,
    STATE_IN_PROGRESS,
    STATE_FINISHED,
    STATE_CANCELLED,
    RESERVATION_STATES,
    ACTIVE_STATES,
    TERMINAL_STATES,
    SWEEP_STATES,
    VALID_TRANSITIONS,
    # Transitions
    get_allowed_transitions,
    validate_transition,
    is_modifiable,
    sweep_target,
)

# Write operations
from .reservation_crud import (
    insert_reservation,
    insert_reservation_lines,
    replace_reservation_lines,
    update_reservation,
    update_reservation_state,
)

# Query operations
from .reservation_queries import (
    get_reservation_by_id,
    get_reservation_lines,
    get_all_reservations,
    get_reservations_by_client,
    get_reservations_by_destination,
    get_reservations_in_states,
    find_conflicts,
    count_overlapping_for_destination,
    count_non_cancelled_for_client,
    count_non_cancelled_by_client,
)

__all__ = [
    'atomic',

    # States
    'STATE_PENDING',
    'STATE_CONFIRMED',
    'STATE_IN_PROGRESS',
    'STATE_FINISHED',
    'STATE_CANCELLED',
    'RESERVATION_STATES',
    'ACTIVE_STATES',
    'TERMINAL_STATES',
    'SWEEP_STATES',
    'VALID_TRANSITIONS',
    'get_allowed_transitions',
    'validate_transition',
    'is_modifiable',
    'sweep_target',

    # Writes
    'insert_reservation',
    'insert_reservation_lines',
    'replace_reservation_lines',
    'update_reservation',
    'update_reservation_state',

    # Queries
    'get_reservation_by_id',
    'get_reservation_lines',
    'get_all_reservations',
    'get_reservations_by_client',
    'get_reservations_by_destination',
    'get_reservations_in_states',
    'find_conflicts',
    'count_overlapping_for_destination',
    'count_non_cancelled_for_client',
    'count_non_cancelled_by_client',
]
