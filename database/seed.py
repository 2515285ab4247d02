"""
Database seed data.
Initial data population for fresh database installations.
"""

from decimal import Decimal

# Percentages the legacy system applied when no policy matched. They are
# seeded as ordinary policies so an administrator can edit or deactivate them.
DEFAULT_POLICIES = [
    ('Bronze loyalty discount', 'Default discount for BRONZE clients',
     'LOYALTY_DISCOUNT', Decimal('5'), None, None, 'BRONZE'),
    ('Silver loyalty discount', 'Default discount for SILVER clients',
     'LOYALTY_DISCOUNT', Decimal('10'), None, None, 'SILVER'),
    ('Gold loyalty discount', 'Default discount for GOLD clients',
     'LOYALTY_DISCOUNT', Decimal('15'), None, None, 'GOLD'),
    ('One week rental', 'Bookings of 7 to 13 days',
     'DURATION_DISCOUNT', Decimal('5'), 7, 13, None),
    ('Two weeks or more', 'Bookings of 14 days or longer',
     'DURATION_DISCOUNT', Decimal('10'), 14, None, None),
]


def seed_database(db, seed_policies: bool = True):
    """Insert initial seed data."""

    # 1. Destinations
    destinations_data = [
        ('Playa Blanca', 'Caribbean beach with calm water', 'Bolivar', 'Cartagena', 'PLAYA', 40),
        ('Nevado del Ruiz', 'High mountain trekking base', 'Caldas', 'Manizales', 'MONTAÑA', 25),
        ('Rio Suarez', 'Whitewater rafting canyon', 'Santander', 'San Gil', 'AVENTURA', None),
    ]

    for name, description, department, city, destination_type, max_capacity in destinations_data:
        db.execute('''
            INSERT INTO destinations (name, description, department, city, destination_type, max_capacity)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (name, description, department, city, destination_type, max_capacity))

    # 2. Equipment types
    types_data = [
        ('Kayak', 'Single and double sea kayaks'),
        ('Surfboard', 'Short and long boards'),
        ('Climbing kit', 'Harness, helmet and rope'),
        ('Raft', 'Six person whitewater raft'),
    ]

    for name, description in types_data:
        db.execute('''
            INSERT INTO equipment_types (name, description)
            VALUES (?, ?)
        ''', (name, description))

    destination_ids = {row['name']: row['id'] for row in db.execute('SELECT id, name FROM destinations')}
    type_ids = {row['name']: row['id'] for row in db.execute('SELECT id, name FROM equipment_types')}

    # 3. Equipment
    equipment_data = [
        ('Kayak K-01', 'Pelican', 'Kayak', 'Playa Blanca', Decimal('85000')),
        ('Kayak K-02', 'Pelican', 'Kayak', 'Playa Blanca', Decimal('85000')),
        ('Surfboard S-01', 'Firewire', 'Surfboard', 'Playa Blanca', Decimal('60000')),
        ('Climbing kit C-01', 'Petzl', 'Climbing kit', 'Nevado del Ruiz', Decimal('45000')),
        ('Raft R-01', 'NRS', 'Raft', 'Rio Suarez', Decimal('250000')),
    ]

    for name, brand, type_name, destination_name, price in equipment_data:
        db.execute('''
            INSERT INTO equipment (name, brand, equipment_type_id, destination_id, condition, rental_price)
            VALUES (?, ?, ?, ?, 'NEW', ?)
        ''', (name, brand, type_ids[type_name], destination_ids[destination_name], price))

    # 4. Pricing policies
    if seed_policies:
        seed_default_policies(db)


def seed_default_policies(db):
    """Insert the default loyalty and duration policies."""
    for name, description, policy_type, percentage, min_days, max_days, tier in DEFAULT_POLICIES:
        db.execute('''
            INSERT INTO pricing_policies (
                name, description, policy_type, percentage, min_days, max_days, loyalty_tier, active
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 1)
        ''', (name, description, policy_type, percentage, min_days, max_days, tier))
