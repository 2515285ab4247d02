"""
Database schema definitions.
Table creation, indexes, and structure management.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'reservation_history',
        'reservation_lines',
        'reservations',
        'pricing_policies',
        'clients',
        'equipment',
        'equipment_types',
        'destinations'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Catalog
    db.execute('''
        CREATE TABLE destinations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            department TEXT NOT NULL,
            city TEXT NOT NULL,
            address TEXT,
            destination_type TEXT,
            max_capacity INTEGER,
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE equipment_types (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT UNIQUE NOT NULL,
            description TEXT
        )
    ''')

    db.execute('''
        CREATE TABLE equipment (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            brand TEXT NOT NULL,
            equipment_type_id INTEGER NOT NULL REFERENCES equipment_types(id),
            destination_id INTEGER NOT NULL REFERENCES destinations(id),
            condition TEXT DEFAULT 'GOOD',
            rental_price DECIMAL(12,2) NOT NULL CHECK(rental_price >= 0),
            acquired_on DATE,
            available INTEGER DEFAULT 1,
            usage_count INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 2. Clients
    db.execute('''
        CREATE TABLE clients (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            document TEXT UNIQUE NOT NULL,
            document_type TEXT DEFAULT 'CC',
            email TEXT,
            phone TEXT,
            preferred_destination_id INTEGER REFERENCES destinations(id),
            reservation_count INTEGER DEFAULT 0,
            loyalty_tier TEXT DEFAULT 'BRONZE'
                CHECK(loyalty_tier IN ('BRONZE', 'SILVER', 'GOLD')),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 3. Pricing policies
    db.execute('''
        CREATE TABLE pricing_policies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            policy_type TEXT NOT NULL CHECK(policy_type IN (
                'SEASONAL_DISCOUNT', 'DURATION_DISCOUNT', 'LOYALTY_DISCOUNT',
                'PEAK_SURCHARGE', 'TAX'
            )),
            percentage DECIMAL(5,2) NOT NULL CHECK(percentage >= 0 AND percentage <= 100),
            valid_from DATE,
            valid_until DATE,
            min_days INTEGER CHECK(min_days IS NULL OR min_days > 0),
            max_days INTEGER CHECK(max_days IS NULL OR max_days > 0),
            loyalty_tier TEXT CHECK(loyalty_tier IS NULL OR loyalty_tier IN ('BRONZE', 'SILVER', 'GOLD')),
            destination_id INTEGER REFERENCES destinations(id),
            equipment_type_id INTEGER REFERENCES equipment_types(id),
            equipment_id INTEGER REFERENCES equipment(id),
            active INTEGER DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK(min_days IS NULL OR max_days IS NULL OR min_days <= max_days)
        )
    ''')

    # 4. Reservations
    db.execute('''
        CREATE TABLE reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id INTEGER NOT NULL REFERENCES clients(id),
            destination_id INTEGER NOT NULL REFERENCES destinations(id),
            start_date DATE NOT NULL,
            end_date DATE NOT NULL,
            state TEXT NOT NULL DEFAULT 'PENDING' CHECK(state IN (
                'PENDING', 'CONFIRMED', 'IN_PROGRESS', 'FINISHED', 'CANCELLED'
            )),
            subtotal DECIMAL(12,2) NOT NULL DEFAULT 0,
            discounts DECIMAL(12,2) NOT NULL DEFAULT 0,
            surcharges DECIMAL(12,2) NOT NULL DEFAULT 0,
            taxes DECIMAL(12,2) NOT NULL DEFAULT 0,
            total DECIMAL(12,2) NOT NULL DEFAULT 0,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP,
            CHECK(start_date <= end_date)
        )
    ''')

    db.execute('''
        CREATE TABLE reservation_lines (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL REFERENCES reservations(id) ON DELETE CASCADE,
            equipment_id INTEGER NOT NULL REFERENCES equipment(id),
            unit_price DECIMAL(12,2) NOT NULL,
            UNIQUE(reservation_id, equipment_id)
        )
    ''')

    # 5. Audit trail (append-only)
    db.execute('''
        CREATE TABLE reservation_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL REFERENCES reservations(id),
            previous_state TEXT,
            new_state TEXT NOT NULL,
            actor TEXT NOT NULL,
            notes TEXT,
            created_at TIMESTAMP NOT NULL
        )
    ''')


def create_indexes(db):
    """Create indexes for the availability, sweep and history queries."""
    db.execute('CREATE INDEX idx_equipment_destination ON equipment(destination_id)')
    db.execute('CREATE INDEX idx_lines_equipment ON reservation_lines(equipment_id)')
    db.execute('CREATE INDEX idx_lines_reservation ON reservation_lines(reservation_id)')
    db.execute('CREATE INDEX idx_reservations_dates ON reservations(start_date, end_date)')
    db.execute('CREATE INDEX idx_reservations_state ON reservations(state)')
    db.execute('CREATE INDEX idx_reservations_client ON reservations(client_id)')
    db.execute('CREATE INDEX idx_policies_type_active ON pricing_policies(policy_type, active)')
    db.execute('CREATE INDEX idx_history_reservation ON reservation_history(reservation_id)')
