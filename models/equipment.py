"""
Sports equipment data access functions.
Handles equipment lookup, catalog admin operations and usage counters.
"""

import logging
import sqlite3
from datetime import date
from decimal import Decimal, InvalidOperation

from database import get_db, transaction
from exceptions import ConflictError, NotFoundError
from .reservation_state import ACTIVE_STATES

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

EQUIPMENT_SELECT = '''
    SELECT e.*, t.name as equipment_type_name, d.name as destination_name
    FROM equipment e
    LEFT JOIN equipment_types t ON e.equipment_type_id = t.id
    LEFT JOIN destinations d ON e.destination_id = d.id
'''


def _to_dict(row) -> dict:
    equipment = dict(row)
    equipment['available'] = bool(equipment['available'])
    return equipment


def _rental_price(value) -> Decimal:
    """Validate a rental price: a non-negative amount with at most 2 decimals."""
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid rental price: {value}") from e
    if not price.is_finite() or price < 0:
        raise ValueError("Rental price must be zero or positive")
    if price != price.quantize(CENT):
        raise ValueError(f"Rental price {price} has more than 2 decimal places")
    return price.quantize(CENT)


def get_equipment_by_id(equipment_id: int) -> dict:
    """
    Get equipment by ID.

    Args:
        equipment_id: Equipment ID

    Returns:
        Equipment dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(EQUIPMENT_SELECT + ' WHERE e.id = ?', (equipment_id,))
    row = cursor.fetchone()
    return _to_dict(row) if row else None


def get_equipment_by_ids(equipment_ids: list) -> dict:
    """
    Get several equipment items in one query.

    Args:
        equipment_ids: List of equipment IDs

    Returns:
        dict: {equipment_id: equipment dict}; unknown IDs are absent
    """
    if not equipment_ids:
        return {}

    db = get_db()
    cursor = db.cursor()
    placeholders = ','.join('?' * len(equipment_ids))
    cursor.execute(EQUIPMENT_SELECT + f' WHERE e.id IN ({placeholders})', list(equipment_ids))
    return {row['id']: _to_dict(row) for row in cursor.fetchall()}


def get_equipment_by_destination(destination_id: int) -> list:
    """
    Get every equipment item owned by a destination.

    Args:
        destination_id: Destination ID

    Returns:
        List of equipment dicts ordered by name
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(EQUIPMENT_SELECT + ' WHERE e.destination_id = ? ORDER BY e.name', (destination_id,))
    return [_to_dict(row) for row in cursor.fetchall()]


def get_equipment_types() -> list:
    """
    Get all equipment types.

    Returns:
        List of equipment type dicts
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM equipment_types ORDER BY name')
    return [dict(row) for row in cursor.fetchall()]


def get_equipment_type_by_id(equipment_type_id: int) -> dict:
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM equipment_types WHERE id = ?', (equipment_type_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def create_equipment_type(name: str, description: str = None) -> int:
    """Create an equipment type and return its ID."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('INSERT INTO equipment_types (name, description) VALUES (?, ?)', (name, description))
    db.commit()
    return cursor.lastrowid


def create_equipment(name: str, brand: str, equipment_type_id: int, destination_id: int,
                     rental_price: Decimal, **kwargs) -> int:
    """
    Create new equipment item.

    Args:
        name: Display name
        brand: Brand
        equipment_type_id: Equipment type ID
        destination_id: Owning destination ID
        rental_price: Flat price per booking
        **kwargs: Optional fields (condition, acquired_on, available)

    Returns:
        New equipment ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO equipment (name, brand, equipment_type_id, destination_id, condition,
                               rental_price, acquired_on, available)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        name,
        brand,
        equipment_type_id,
        destination_id,
        kwargs.get('condition', 'NEW'),
        _rental_price(rental_price),
        kwargs.get('acquired_on', date.today()),
        1 if kwargs.get('available', True) else 0
    ))
    db.commit()
    return cursor.lastrowid


def set_equipment_availability(equipment_id: int, available: bool) -> bool:
    """
    Toggle the general availability flag (maintenance, retirement).

    Returns:
        bool: True if the equipment exists
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('UPDATE equipment SET available = ? WHERE id = ?',
                   (1 if available else 0, equipment_id))
    db.commit()
    return cursor.rowcount > 0


def increment_usage_count(equipment_ids: list) -> None:
    """
    Add one use to each equipment item.
    Runs inside the caller's transaction; does not commit.
    """
    if not equipment_ids:
        return

    db = get_db()
    placeholders = ','.join('?' * len(equipment_ids))
    db.execute(f'''
        UPDATE equipment
        SET usage_count = COALESCE(usage_count, 0) + 1
        WHERE id IN ({placeholders})
    ''', list(equipment_ids))


def has_active_reservations(equipment_id: int) -> bool:
    """True while a PENDING, CONFIRMED or IN_PROGRESS reservation books the item."""
    db = get_db()
    placeholders = ','.join('?' * len(ACTIVE_STATES))
    row = db.execute(f'''
        SELECT 1
        FROM reservation_lines l
        JOIN reservations r ON l.reservation_id = r.id
        WHERE l.equipment_id = ?
          AND r.state IN ({placeholders})
        LIMIT 1
    ''', [equipment_id] + list(ACTIVE_STATES)).fetchone()
    return row is not None


def delete_equipment(equipment_id: int) -> None:
    """
    Delete an equipment item.

    Raises:
        NotFoundError: If the equipment does not exist
        ConflictError: If an active reservation books it, or finished and
            cancelled reservations or pricing policies still reference it
    """
    with transaction() as db:
        if not get_equipment_by_id(equipment_id):
            raise NotFoundError('Equipment', equipment_id)

        if has_active_reservations(equipment_id):
            raise ConflictError(
                f"Equipment {equipment_id} has active reservations; cancel them first",
                equipment_id=equipment_id
            )

        try:
            db.execute('DELETE FROM equipment WHERE id = ?', (equipment_id,))
        except sqlite3.IntegrityError as e:
            raise ConflictError(
                f"Equipment {equipment_id} is still referenced by reservations or policies; "
                f"mark it unavailable instead",
                equipment_id=equipment_id
            ) from e

    logger.info(f"[Catalog] Deleted equipment {equipment_id}")
