"""
Client data access functions.
Handles client CRUD and keeps the loyalty tier in step with the reservation count.

The stored (reservation_count, loyalty_tier) pair is always rewritten together
from an authoritative recount of non-cancelled reservations; nothing increments
or decrements it in place.
"""

import logging

from database import get_db, transaction
from .destination import get_destination_by_id
from .loyalty import tier_for
from .reservation_queries import (
    count_non_cancelled_for_client,
    count_non_cancelled_by_client,
    get_reservations_by_client,
)

logger = logging.getLogger(__name__)

RECENT_RESERVATIONS = 5


def _write_loyalty(db, client_id: int, reservation_count: int) -> str:
    tier = tier_for(reservation_count)
    db.execute('''
        UPDATE clients
        SET reservation_count = ?,
            loyalty_tier = ?,
            updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (reservation_count, tier, client_id))
    return tier


def _sync_loyalty(client: dict, reservation_count: int) -> dict:
    """Apply a fresh count to a client dict, persisting it when it drifted."""
    tier = tier_for(reservation_count)
    if client['reservation_count'] != reservation_count or client['loyalty_tier'] != tier:
        logger.debug(
            f"[Loyalty] Client {client['id']}: {client['reservation_count']}/{client['loyalty_tier']}"
            f" -> {reservation_count}/{tier}"
        )
        with transaction() as db:
            _write_loyalty(db, client['id'], reservation_count)
    client['reservation_count'] = reservation_count
    client['loyalty_tier'] = tier
    return client


# =============================================================================
# READ
# =============================================================================

def get_client_by_id(client_id: int) -> dict:
    """
    Get client by ID with a freshly computed reservation count and tier.

    Args:
        client_id: Client ID

    Returns:
        Client dict or None if not found

    Raises:
        ConflictError: If a drifted count cannot be saved because another writer holds the lock
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM clients WHERE id = ?', (client_id,))
    row = cursor.fetchone()
    if not row:
        return None

    return _sync_loyalty(dict(row), count_non_cancelled_for_client(client_id))


def get_client_by_document(document: str) -> dict:
    """
    Get client by identity document with a freshly computed reservation count and tier.

    Returns:
        Client dict or None if no client has that document
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM clients WHERE document = ?', ((document or '').strip(),))
    row = cursor.fetchone()
    if not row:
        return None

    return _sync_loyalty(dict(row), count_non_cancelled_for_client(row['id']))


def get_all_clients() -> list:
    """
    Get all clients, recounting every client's reservations in one grouped query.

    Returns:
        List of client dicts ordered by last name
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM clients ORDER BY last_name, first_name')
    rows = cursor.fetchall()

    counts = count_non_cancelled_by_client()
    return [_sync_loyalty(dict(row), counts.get(row['id'], 0)) for row in rows]


def get_client_statistics(client_id: int) -> dict:
    """
    Summarize a client's booking activity.

    Returns:
        dict with reservation_count, loyalty_tier, preferred_destination,
        by_state, total_spent and recent_reservations (newest five),
        or None if the client does not exist
    """
    client = get_client_by_id(client_id)
    if not client:
        return None

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT state, COUNT(*) as count
        FROM reservations
        WHERE client_id = ?
        GROUP BY state
    ''', (client_id,))
    by_state = {row['state']: row['count'] for row in cursor.fetchall()}

    cursor.execute('''
        SELECT total FROM reservations
        WHERE client_id = ? AND state != 'CANCELLED'
    ''', (client_id,))
    total_spent = sum((row['total'] for row in cursor.fetchall()), start=0)

    preferred_id = client['preferred_destination_id']

    return {
        'client_id': client_id,
        'reservation_count': client['reservation_count'],
        'loyalty_tier': client['loyalty_tier'],
        'preferred_destination': get_destination_by_id(preferred_id) if preferred_id else None,
        'by_state': by_state,
        'total_spent': total_spent,
        'recent_reservations': get_reservations_by_client(client_id)[:RECENT_RESERVATIONS]
    }


# =============================================================================
# WRITE
# =============================================================================

def create_client(first_name: str, last_name: str, document: str, **kwargs) -> int:
    """
    Create a client. New clients start at zero reservations (BRONZE).

    Args:
        first_name: First name
        last_name: Last name
        document: Identity document number (unique)
        **kwargs: Optional fields (document_type, email, phone)

    Returns:
        New client ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO clients (first_name, last_name, document, document_type, email, phone,
                             reservation_count, loyalty_tier)
        VALUES (?, ?, ?, ?, ?, ?, 0, ?)
    ''', (
        first_name,
        last_name,
        document,
        kwargs.get('document_type', 'CC'),
        kwargs.get('email'),
        kwargs.get('phone'),
        tier_for(0)
    ))
    db.commit()
    return cursor.lastrowid


def refresh_client_loyalty(client_id: int) -> str:
    """
    Recount a client's non-cancelled reservations and store count and tier.
    Runs inside the caller's transaction; does not commit.

    Returns:
        str: The client's tier after the recount
    """
    db = get_db()
    return _write_loyalty(db, client_id, count_non_cancelled_for_client(client_id))


def refresh_preferred_destination(client_id: int):
    """
    Store the destination a client books most often, counting every reservation.
    Ties go to the destination booked most recently. Runs inside the caller's
    transaction; does not commit.

    Returns:
        The preferred destination ID, or None for a client with no reservations
    """
    db = get_db()
    row = db.execute('''
        SELECT destination_id, COUNT(*) as bookings, MAX(id) as latest
        FROM reservations
        WHERE client_id = ?
        GROUP BY destination_id
        ORDER BY bookings DESC, latest DESC
        LIMIT 1
    ''', (client_id,)).fetchone()
    preferred = row['destination_id'] if row else None
    db.execute('UPDATE clients SET preferred_destination_id = ? WHERE id = ?', (preferred, client_id))
    return preferred
