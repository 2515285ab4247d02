"""
Reservation query operations.
Handles listing, overlap detection and per-client counts.
"""

from database import get_db
from .reservation_state import ACTIVE_STATES, STATE_CANCELLED


def _placeholders(values) -> str:
    return ','.join('?' * len(values))


def _attach_lines(reservations: list) -> list:
    """Load the lines of several reservations in one query."""
    if not reservations:
        return reservations

    ids = [r['id'] for r in reservations]
    db = get_db()
    cursor = db.cursor()
    cursor.execute(f'''
        SELECT l.id, l.reservation_id, l.equipment_id, l.unit_price,
               e.name as equipment_name, e.equipment_type_id
        FROM reservation_lines l
        JOIN equipment e ON l.equipment_id = e.id
        WHERE l.reservation_id IN ({_placeholders(ids)})
        ORDER BY l.id
    ''', ids)

    lines_by_reservation = {reservation_id: [] for reservation_id in ids}
    for row in cursor.fetchall():
        lines_by_reservation[row['reservation_id']].append(dict(row))

    for reservation in reservations:
        reservation['lines'] = lines_by_reservation[reservation['id']]
    return reservations


# =============================================================================
# SINGLE RESERVATION
# =============================================================================

def get_reservation_by_id(reservation_id: int) -> dict:
    """
    Get reservation by ID, including its lines.

    Args:
        reservation_id: Reservation ID

    Returns:
        Reservation dict with 'lines' or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM reservations WHERE id = ?', (reservation_id,))
    row = cursor.fetchone()
    if not row:
        return None
    return _attach_lines([dict(row)])[0]


def get_reservation_lines(reservation_id: int) -> list:
    """Get the lines of one reservation in insertion order."""
    reservation = get_reservation_by_id(reservation_id)
    return reservation['lines'] if reservation else []


# =============================================================================
# LIST QUERIES
# =============================================================================

def get_all_reservations() -> list:
    """
    Get every reservation, newest first.

    Returns:
        List of reservation dicts with lines
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM reservations ORDER BY created_at DESC, id DESC')
    return _attach_lines([dict(row) for row in cursor.fetchall()])


def get_reservations_by_client(client_id: int) -> list:
    """Get a client's reservations, newest first."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM reservations
        WHERE client_id = ?
        ORDER BY created_at DESC, id DESC
    ''', (client_id,))
    return _attach_lines([dict(row) for row in cursor.fetchall()])


def get_reservations_by_destination(destination_id: int) -> list:
    """Get a destination's reservations ordered by start date."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM reservations
        WHERE destination_id = ?
        ORDER BY start_date, id
    ''', (destination_id,))
    return _attach_lines([dict(row) for row in cursor.fetchall()])


def get_reservations_in_states(states) -> list:
    """
    Get reservations whose state is one of the given states (without lines).

    Args:
        states: Iterable of state names

    Returns:
        List of reservation dicts ordered by start date
    """
    states = list(states)
    if not states:
        return []

    db = get_db()
    cursor = db.cursor()
    cursor.execute(f'''
        SELECT * FROM reservations
        WHERE state IN ({_placeholders(states)})
        ORDER BY start_date, id
    ''', states)
    return [dict(row) for row in cursor.fetchall()]


# =============================================================================
# AVAILABILITY
# =============================================================================

def find_conflicts(
    equipment_ids: list,
    start_date,
    end_date,
    exclude_reservation_id: int = None
) -> list:
    """
    Find active bookings that overlap a date range for any of the given equipment.

    Two inclusive ranges overlap when existing.start <= new.end and
    existing.end >= new.start. Only PENDING, CONFIRMED and IN_PROGRESS
    reservations are considered.

    Args:
        equipment_ids: Equipment IDs to check
        start_date: Range start (inclusive)
        end_date: Range end (inclusive)
        exclude_reservation_id: Reservation to ignore (for modifications)

    Returns:
        list: Dicts with equipment_id, reservation_id, start_date, end_date, state
    """
    if not equipment_ids:
        return []

    db = get_db()
    cursor = db.cursor()

    query = f'''
        SELECT l.equipment_id, r.id as reservation_id, r.start_date, r.end_date, r.state
        FROM reservation_lines l
        JOIN reservations r ON l.reservation_id = r.id
        WHERE l.equipment_id IN ({_placeholders(equipment_ids)})
          AND r.state IN ({_placeholders(ACTIVE_STATES)})
          AND r.start_date <= ?
          AND r.end_date >= ?
    '''
    params = list(equipment_ids) + list(ACTIVE_STATES) + [end_date, start_date]

    if exclude_reservation_id:
        query += ' AND r.id != ?'
        params.append(exclude_reservation_id)

    query += ' ORDER BY r.start_date, r.id'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def count_overlapping_for_destination(destination_id: int, start_date, end_date) -> int:
    """Count active reservations at a destination that overlap a date range."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute(f'''
        SELECT COUNT(*) as count
        FROM reservations
        WHERE destination_id = ?
          AND state IN ({_placeholders(ACTIVE_STATES)})
          AND start_date <= ?
          AND end_date >= ?
    ''', [destination_id] + list(ACTIVE_STATES) + [end_date, start_date])
    return cursor.fetchone()['count']


# =============================================================================
# CLIENT COUNTS
# =============================================================================

def count_non_cancelled_for_client(client_id: int) -> int:
    """Authoritative count of a client's reservations that are not cancelled."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT COUNT(*) as total
        FROM reservations
        WHERE client_id = ? AND state != ?
    ''', (client_id, STATE_CANCELLED))
    return cursor.fetchone()['total']


def count_non_cancelled_by_client() -> dict:
    """Non-cancelled reservation counts for every client that has any: {client_id: count}."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT client_id, COUNT(*) as total
        FROM reservations
        WHERE state != ?
        GROUP BY client_id
    ''', (STATE_CANCELLED,))
    return {row['client_id']: row['total'] for row in cursor.fetchall()}
