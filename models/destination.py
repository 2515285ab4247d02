"""
Destination data access functions.
Destinations are read-only for the reservation core; creation and deletion are admin tasks.
"""

import logging
import sqlite3

from database import get_db, transaction
from exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def get_all_destinations(active_only: bool = True) -> list:
    """
    Get all destinations.

    Args:
        active_only: If True, only return active destinations

    Returns:
        List of destination dicts ordered by name
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM destinations WHERE 1=1'
    if active_only:
        query += ' AND active = 1'
    query += ' ORDER BY name'

    cursor.execute(query)
    return [dict(row) for row in cursor.fetchall()]


def get_destination_by_id(destination_id: int) -> dict:
    """
    Get destination by ID.

    Args:
        destination_id: Destination ID

    Returns:
        Destination dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM destinations WHERE id = ?', (destination_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def create_destination(name: str, department: str, city: str, **kwargs) -> int:
    """
    Create a destination.

    Args:
        name: Display name
        department: Department (region)
        city: City
        **kwargs: Optional fields (description, address, destination_type, max_capacity)

    Returns:
        New destination ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO destinations (name, description, department, city, address,
                                  destination_type, max_capacity)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    ''', (
        name,
        kwargs.get('description'),
        department,
        city,
        kwargs.get('address'),
        kwargs.get('destination_type'),
        kwargs.get('max_capacity')
    ))
    db.commit()
    return cursor.lastrowid


def delete_destination(destination_id: int) -> None:
    """
    Delete a destination that owns no equipment.

    Raises:
        NotFoundError: If the destination does not exist
        ConflictError: If equipment is attached, or reservations or pricing
            policies still reference it
    """
    with transaction() as db:
        if not get_destination_by_id(destination_id):
            raise NotFoundError('Destination', destination_id)

        row = db.execute('SELECT COUNT(*) FROM equipment WHERE destination_id = ?',
                         (destination_id,)).fetchone()
        if row[0]:
            raise ConflictError(f"Destination {destination_id} has {row[0]} equipment item(s) attached")

        try:
            db.execute('DELETE FROM destinations WHERE id = ?', (destination_id,))
        except sqlite3.IntegrityError as e:
            raise ConflictError(
                f"Destination {destination_id} is still referenced by reservations or policies"
            ) from e

    logger.info(f"[Catalog] Deleted destination {destination_id}")
