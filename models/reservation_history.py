"""
Reservation history (audit trail).
Append-only: entries are written once and never updated or deleted.
"""

from database import get_db


def append_history_entry(
    reservation_id: int,
    previous_state: str,
    new_state: str,
    actor: str,
    notes: str,
    created_at
) -> int:
    """
    Record a lifecycle event. Runs inside the caller's transaction; does not commit.

    Args:
        reservation_id: Reservation ID
        previous_state: State before the event (None on creation)
        new_state: State after the event
        actor: Who caused it ('SYSTEM' for the sweep)
        notes: Free text
        created_at: Event timestamp

    Returns:
        New history entry ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO reservation_history
        (reservation_id, previous_state, new_state, actor, notes, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (reservation_id, previous_state, new_state, actor, notes, created_at))
    return cursor.lastrowid


def get_history(reservation_id: int) -> list:
    """
    Get the history of a reservation.

    Args:
        reservation_id: Reservation ID

    Returns:
        list: History entries, newest first
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM reservation_history
        WHERE reservation_id = ?
        ORDER BY created_at DESC, id DESC
    ''', (reservation_id,))
    return [dict(r) for r in cursor.fetchall()]
