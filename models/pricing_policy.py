"""
Pricing policy data access functions.
Handles the policy store read by the pricing engine and policy administration.
"""

import logging
from decimal import Decimal, InvalidOperation

from database import get_db
from exceptions import InvalidRangeError, NotFoundError, PolicyValidationError
from utils.datetime_helpers import parse_date
from .loyalty import LOYALTY_TIERS

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

POLICY_SEASONAL_DISCOUNT = 'SEASONAL_DISCOUNT'
POLICY_DURATION_DISCOUNT = 'DURATION_DISCOUNT'
POLICY_LOYALTY_DISCOUNT = 'LOYALTY_DISCOUNT'
POLICY_PEAK_SURCHARGE = 'PEAK_SURCHARGE'
POLICY_TAX = 'TAX'

POLICY_TYPES = (
    POLICY_SEASONAL_DISCOUNT,
    POLICY_DURATION_DISCOUNT,
    POLICY_LOYALTY_DISCOUNT,
    POLICY_PEAK_SURCHARGE,
    POLICY_TAX,
)

POLICY_FIELDS = (
    'name', 'description', 'policy_type', 'percentage', 'valid_from', 'valid_until',
    'min_days', 'max_days', 'loyalty_tier', 'destination_id', 'equipment_type_id',
    'equipment_id', 'active',
)

POLICY_SELECT = '''
    SELECT p.*,
           d.name as destination_name,
           t.name as equipment_type_name,
           e.name as equipment_name
    FROM pricing_policies p
    LEFT JOIN destinations d ON p.destination_id = d.id
    LEFT JOIN equipment_types t ON p.equipment_type_id = t.id
    LEFT JOIN equipment e ON p.equipment_id = e.id
'''


def _to_dict(row) -> dict:
    policy = dict(row)
    policy['active'] = bool(policy['active'])
    return policy


def _placeholders(values) -> str:
    return ','.join('?' * len(values))


# =============================================================================
# POLICY STORE (read by the pricing engine)
# =============================================================================

def get_applicable_policies(
    policy_type: str,
    on_date,
    destination_id: int = None,
    equipment_type_ids: list = None,
    equipment_ids: list = None
) -> list:
    """
    Get active policies of one type that are candidates for a booking.

    Filters by validity window (null bounds are open) and scope (a null scope
    field applies to everything). Duration and loyalty predicates are left to
    the pricing engine.

    Args:
        policy_type: One of POLICY_TYPES
        on_date: Date the validity window must contain (booking start)
        destination_id: Booking destination
        equipment_type_ids: Equipment types present in the booking
        equipment_ids: Equipment present in the booking

    Returns:
        List of policy dicts ordered by ID
    """
    db = get_db()
    cursor = db.cursor()

    query = POLICY_SELECT + '''
        WHERE p.active = 1
          AND p.policy_type = ?
          AND (p.valid_from IS NULL OR p.valid_from <= ?)
          AND (p.valid_until IS NULL OR p.valid_until >= ?)
          AND (p.destination_id IS NULL OR p.destination_id = ?)
    '''
    params = [policy_type, on_date, on_date, destination_id]

    type_ids = list(equipment_type_ids or [])
    if type_ids:
        query += f' AND (p.equipment_type_id IS NULL OR p.equipment_type_id IN ({_placeholders(type_ids)}))'
        params.extend(type_ids)
    else:
        query += ' AND p.equipment_type_id IS NULL'

    item_ids = list(equipment_ids or [])
    if item_ids:
        query += f' AND (p.equipment_id IS NULL OR p.equipment_id IN ({_placeholders(item_ids)}))'
        params.extend(item_ids)
    else:
        query += ' AND p.equipment_id IS NULL'

    query += ' ORDER BY p.id'

    cursor.execute(query, params)
    return [_to_dict(row) for row in cursor.fetchall()]


# =============================================================================
# READ
# =============================================================================

def get_policy_by_id(policy_id: int) -> dict:
    """
    Get policy by ID.

    Args:
        policy_id: Policy ID

    Returns:
        Policy dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(POLICY_SELECT + ' WHERE p.id = ?', (policy_id,))
    row = cursor.fetchone()
    return _to_dict(row) if row else None


def get_all_policies(active_only: bool = False) -> list:
    """
    Get all pricing policies.

    Args:
        active_only: If True, only return active policies

    Returns:
        List of policy dicts ordered by type and name
    """
    db = get_db()
    cursor = db.cursor()

    query = POLICY_SELECT + ' WHERE 1=1'
    if active_only:
        query += ' AND p.active = 1'
    query += ' ORDER BY p.policy_type, p.name'

    cursor.execute(query)
    return [_to_dict(row) for row in cursor.fetchall()]


def get_active_policies() -> list:
    return get_all_policies(active_only=True)


def get_policies_for_destination(destination_id: int) -> list:
    """Active policies scoped to a destination or universal on that axis."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute(POLICY_SELECT + '''
        WHERE p.active = 1
          AND (p.destination_id IS NULL OR p.destination_id = ?)
        ORDER BY p.policy_type, p.name
    ''', (destination_id,))
    return [_to_dict(row) for row in cursor.fetchall()]


def get_policies_for_equipment_type(equipment_type_id: int) -> list:
    """Active policies scoped to an equipment type or universal on that axis."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute(POLICY_SELECT + '''
        WHERE p.active = 1
          AND (p.equipment_type_id IS NULL OR p.equipment_type_id = ?)
        ORDER BY p.policy_type, p.name
    ''', (equipment_type_id,))
    return [_to_dict(row) for row in cursor.fetchall()]


def get_policies_for_equipment(equipment_id: int) -> list:
    """Active policies scoped to one equipment item or universal on that axis."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute(POLICY_SELECT + '''
        WHERE p.active = 1
          AND (p.equipment_id IS NULL OR p.equipment_id = ?)
        ORDER BY p.policy_type, p.name
    ''', (equipment_id,))
    return [_to_dict(row) for row in cursor.fetchall()]


def get_policies_in_range(start_date, end_date) -> list:
    """
    Active policies whose validity window overlaps [start_date, end_date].

    Raises:
        InvalidRangeError: If start_date is after end_date
    """
    start_date = parse_date(start_date)
    end_date = parse_date(end_date)
    if start_date > end_date:
        raise InvalidRangeError(start_date, end_date)

    db = get_db()
    cursor = db.cursor()
    cursor.execute(POLICY_SELECT + '''
        WHERE p.active = 1
          AND (p.valid_from IS NULL OR p.valid_from <= ?)
          AND (p.valid_until IS NULL OR p.valid_until >= ?)
        ORDER BY p.valid_from, p.id
    ''', (end_date, start_date))
    return [_to_dict(row) for row in cursor.fetchall()]


# =============================================================================
# VALIDATION
# =============================================================================

def _exists(db, table: str, row_id: int) -> bool:
    row = db.execute(f'SELECT 1 FROM {table} WHERE id = ?', (row_id,)).fetchone()
    return row is not None


def _normalize(data: dict) -> dict:
    """Coerce input types and validate a complete policy dict."""
    name = (data.get('name') or '').strip()
    if not name:
        raise PolicyValidationError('Policy name is required')

    policy_type = data.get('policy_type')
    if not policy_type:
        raise PolicyValidationError('Policy type is required')
    if policy_type not in POLICY_TYPES:
        raise PolicyValidationError(
            f"Invalid policy type '{policy_type}'. Valid types: {', '.join(POLICY_TYPES)}"
        )

    try:
        percentage = Decimal(str(data.get('percentage')))
    except (InvalidOperation, ValueError) as e:
        raise PolicyValidationError(f"Invalid percentage: {data.get('percentage')}") from e
    if not percentage.is_finite() or percentage < 0 or percentage > 100:
        raise PolicyValidationError('Percentage must be between 0 and 100')
    if percentage != percentage.quantize(CENT):
        raise PolicyValidationError(f"Percentage {percentage} has more than 2 decimal places")
    percentage = percentage.quantize(CENT)

    valid_from = parse_date(data.get('valid_from'))
    valid_until = parse_date(data.get('valid_until'))
    if valid_from and valid_until and valid_from > valid_until:
        raise InvalidRangeError(valid_from, valid_until,
                                'Policy start date cannot be after its end date')

    min_days = data.get('min_days')
    max_days = data.get('max_days')
    if min_days is not None and int(min_days) <= 0:
        raise PolicyValidationError('Minimum days must be greater than 0')
    if max_days is not None and int(max_days) <= 0:
        raise PolicyValidationError('Maximum days must be greater than 0')
    if min_days is not None and max_days is not None and int(min_days) > int(max_days):
        raise PolicyValidationError('Minimum days cannot be greater than maximum days')

    loyalty_tier = data.get('loyalty_tier')
    if loyalty_tier is not None and loyalty_tier not in LOYALTY_TIERS:
        raise PolicyValidationError(
            f"Invalid loyalty tier '{loyalty_tier}'. Valid tiers: {', '.join(LOYALTY_TIERS)}"
        )

    db = get_db()
    for field, table, entity in (
        ('destination_id', 'destinations', 'Destination'),
        ('equipment_type_id', 'equipment_types', 'Equipment type'),
        ('equipment_id', 'equipment', 'Equipment'),
    ):
        if data.get(field) is not None and not _exists(db, table, data[field]):
            raise NotFoundError(entity, data[field])

    return {
        'name': name,
        'description': data.get('description'),
        'policy_type': policy_type,
        'percentage': percentage,
        'valid_from': valid_from,
        'valid_until': valid_until,
        'min_days': int(min_days) if min_days is not None else None,
        'max_days': int(max_days) if max_days is not None else None,
        'loyalty_tier': loyalty_tier,
        'destination_id': data.get('destination_id'),
        'equipment_type_id': data.get('equipment_type_id'),
        'equipment_id': data.get('equipment_id'),
        'active': 1 if data.get('active', True) else 0,
    }


# =============================================================================
# WRITE
# =============================================================================

def create_policy(name: str, policy_type: str, percentage, **kwargs) -> int:
    """
    Create a pricing policy.

    Args:
        name: Policy name
        policy_type: One of POLICY_TYPES
        percentage: Percentage in [0, 100]
        **kwargs: Optional fields (description, valid_from, valid_until, min_days,
                  max_days, loyalty_tier, destination_id, equipment_type_id,
                  equipment_id, active)

    Returns:
        New policy ID

    Raises:
        PolicyValidationError: Missing or invalid field
        InvalidRangeError: valid_from after valid_until
        NotFoundError: Referenced destination, type or equipment does not exist
    """
    data = {'name': name, 'policy_type': policy_type, 'percentage': percentage, **kwargs}
    policy = _normalize(data)

    db = get_db()
    cursor = db.cursor()
    cursor.execute(f'''
        INSERT INTO pricing_policies ({', '.join(POLICY_FIELDS)})
        VALUES ({_placeholders(POLICY_FIELDS)})
    ''', [policy[field] for field in POLICY_FIELDS])
    db.commit()

    logger.info(f"[Policy] Created {policy_type} '{name}' ({policy['percentage']}%)")
    return cursor.lastrowid


def update_policy(policy_id: int, **kwargs) -> dict:
    """
    Update a pricing policy. Only the given fields change; the merged result
    is validated as a whole.

    Returns:
        Updated policy dict

    Raises:
        NotFoundError: If the policy does not exist
        PolicyValidationError, InvalidRangeError: On invalid input
    """
    existing = get_policy_by_id(policy_id)
    if not existing:
        raise NotFoundError('Pricing policy', policy_id)

    unknown = set(kwargs) - set(POLICY_FIELDS)
    if unknown:
        raise PolicyValidationError(f"Unknown policy fields: {', '.join(sorted(unknown))}")

    merged = {field: existing.get(field) for field in POLICY_FIELDS}
    merged.update(kwargs)
    policy = _normalize(merged)

    db = get_db()
    db.execute(f'''
        UPDATE pricing_policies
        SET {', '.join(f'{field} = ?' for field in POLICY_FIELDS)},
            updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', [policy[field] for field in POLICY_FIELDS] + [policy_id])
    db.commit()

    logger.info(f"[Policy] Updated policy {policy_id}: {', '.join(sorted(kwargs)) or 'no changes'}")
    return get_policy_by_id(policy_id)


def set_policy_active(policy_id: int, active: bool) -> bool:
    """
    Activate or deactivate a policy.

    Returns:
        bool: True if the policy exists
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        UPDATE pricing_policies
        SET active = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (1 if active else 0, policy_id))
    db.commit()
    return cursor.rowcount > 0


def delete_policy(policy_id: int) -> bool:
    """
    Delete a policy. Existing reservations keep their stored totals.

    Returns:
        bool: True if deleted
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('DELETE FROM pricing_policies WHERE id = ?', (policy_id,))
    db.commit()
    return cursor.rowcount > 0
