"""
Reservation write operations.
Every function here runs inside the caller's transaction and never commits.
"""

from database import get_db


def insert_reservation(
    client_id: int,
    destination_id: int,
    start_date,
    end_date,
    state: str,
    totals: dict,
    created_at
) -> int:
    """
    Insert a reservation header.

    Args:
        client_id: Client ID
        destination_id: Destination ID
        start_date: First rental day
        end_date: Last rental day (inclusive)
        state: Initial state
        totals: dict with subtotal, discounts, surcharges, taxes, total
        created_at: Creation timestamp

    Returns:
        New reservation ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO reservations (
            client_id, destination_id, start_date, end_date, state,
            subtotal, discounts, surcharges, taxes, total,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        client_id, destination_id, start_date, end_date, state,
        totals['subtotal'], totals['discounts'], totals['surcharges'], totals['taxes'], totals['total'],
        created_at, created_at
    ))
    return cursor.lastrowid


def insert_reservation_lines(reservation_id: int, lines: list) -> None:
    """
    Insert lines for a reservation.

    Args:
        reservation_id: Owning reservation ID
        lines: List of dicts with equipment_id and unit_price
    """
    db = get_db()
    db.executemany('''
        INSERT INTO reservation_lines (reservation_id, equipment_id, unit_price)
        VALUES (?, ?, ?)
    ''', [(reservation_id, line['equipment_id'], line['unit_price']) for line in lines])


def replace_reservation_lines(reservation_id: int, lines: list) -> None:
    """Delete every line of a reservation and insert the new set."""
    db = get_db()
    db.execute('DELETE FROM reservation_lines WHERE reservation_id = ?', (reservation_id,))
    insert_reservation_lines(reservation_id, lines)


def update_reservation(
    reservation_id: int,
    client_id: int,
    destination_id: int,
    start_date,
    end_date,
    totals: dict,
    updated_at
) -> None:
    """Rewrite the editable fields and totals of a reservation (state untouched)."""
    db = get_db()
    db.execute('''
        UPDATE reservations
        SET client_id = ?,
            destination_id = ?,
            start_date = ?,
            end_date = ?,
            subtotal = ?,
            discounts = ?,
            surcharges = ?,
            taxes = ?,
            total = ?,
            updated_at = ?
        WHERE id = ?
    ''', (
        client_id, destination_id, start_date, end_date,
        totals['subtotal'], totals['discounts'], totals['surcharges'], totals['taxes'], totals['total'],
        updated_at, reservation_id
    ))


def update_reservation_state(reservation_id: int, new_state: str, updated_at) -> None:
    """Set a reservation's state."""
    db = get_db()
    db.execute('''
        UPDATE reservations
        SET state = ?,
            updated_at = ?
        WHERE id = ?
    ''', (new_state, updated_at, reservation_id))
