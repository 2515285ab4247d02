"""
Tests for database initialization, type conversion and transactions.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from database import get_db, transaction


class TestSchema:
    """Tables and seed data."""

    def test_tables_created(self, app):
        db = get_db()
        tables = {row['name'] for row in db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}

        assert {
            'destinations', 'equipment_types', 'equipment', 'clients', 'pricing_policies',
            'reservations', 'reservation_lines', 'reservation_history'
        } <= tables

    def test_seeded_catalog(self, seed):
        assert set(seed['destinations']) == {'Playa Blanca', 'Nevado del Ruiz', 'Rio Suarez'}
        assert len(seed['equipment']) == 5

    def test_foreign_keys_enforced(self, app):
        import sqlite3

        db = get_db()
        with pytest.raises(sqlite3.IntegrityError):
            db.execute('''
                INSERT INTO equipment (name, brand, equipment_type_id, destination_id, rental_price)
                VALUES ('Ghost', 'None', 9999, 9999, 10)
            ''')
        db.rollback()

    def test_policy_percentage_check(self, app):
        import sqlite3

        db = get_db()
        with pytest.raises(sqlite3.IntegrityError):
            db.execute("INSERT INTO pricing_policies (name, policy_type, percentage) VALUES ('X', 'TAX', 120)")
        db.rollback()


class TestTypeConversion:
    """Decimal, date and timestamp columns round-trip as Python types."""

    def test_equipment_price_is_decimal(self, app, seed):
        from models.equipment import get_equipment_by_id

        equipment = get_equipment_by_id(seed['equipment']['Kayak K-01'])

        assert equipment['rental_price'] == Decimal('85000.00')
        assert isinstance(equipment['rental_price'], Decimal)
        assert equipment['available'] is True

    def test_fractional_price(self, app, seed):
        from models.equipment import create_equipment, get_equipment_by_id

        equipment_id = create_equipment('Paddle P-01', 'Werner', seed['types']['Kayak'],
                                        seed['destinations']['Playa Blanca'], Decimal('12500.50'),
                                        acquired_on=date(2029, 5, 1))
        equipment = get_equipment_by_id(equipment_id)

        assert equipment['rental_price'] == Decimal('12500.50')
        assert equipment['acquired_on'] == date(2029, 5, 1)

    def test_stored_decimals_read_without_rounding(self, app, seed):
        from models.equipment import get_equipment_by_id
        from models.pricing_policy import get_policy_by_id

        db = get_db()
        db.execute("UPDATE equipment SET rental_price = '10.005' WHERE id = ?", (seed['equipment']['Kayak K-01'],))
        cursor = db.execute("INSERT INTO pricing_policies (name, policy_type, percentage) VALUES ('Odd tax', 'TAX', '12.345')")
        db.commit()

        assert get_equipment_by_id(seed['equipment']['Kayak K-01'])['rental_price'] == Decimal('10.005')
        assert get_policy_by_id(cursor.lastrowid)['percentage'] == Decimal('12.345')

    @pytest.mark.parametrize('raw,expected', [
        (b'85000', '85000.00'),
        (b'12.5', '12.50'),
        (b'0.125', '0.125'),
        (b'99.99', '99.99'),
    ])
    def test_decimal_converter_pads_but_never_rounds(self, raw, expected):
        from database.connection import _convert_decimal

        assert str(_convert_decimal(raw)) == expected

    @pytest.mark.parametrize('price', [Decimal('10.005'), '12.999', -1, 'abc'])
    def test_invalid_price_rejected(self, app, seed, price):
        from models.equipment import create_equipment

        with pytest.raises(ValueError):
            create_equipment('Paddle P-02', 'Werner', seed['types']['Kayak'],
                             seed['destinations']['Playa Blanca'], price)
        assert get_db().execute("SELECT COUNT(*) FROM equipment WHERE name = 'Paddle P-02'").fetchone()[0] == 0

    def test_timestamp(self, service, customer, seed):
        reservation = service.create(customer, date(2030, 1, 11), date(2030, 1, 11),
                                     seed['destinations']['Playa Blanca'], [seed['equipment']['Kayak K-01']])

        assert reservation['created_at'] == datetime(2030, 1, 10, 9, 0)


class TestTransaction:
    """BEGIN IMMEDIATE transactions."""

    def test_commit(self, app):
        with transaction() as db:
            db.execute("INSERT INTO equipment_types (name) VALUES ('Snorkel')")

        assert get_db().in_transaction is False
        assert get_db().execute("SELECT COUNT(*) FROM equipment_types WHERE name = 'Snorkel'").fetchone()[0] == 1

    def test_rollback_on_error(self, app):
        with pytest.raises(RuntimeError):
            with transaction() as db:
                db.execute("INSERT INTO equipment_types (name) VALUES ('Snorkel')")
                raise RuntimeError('abort')

        assert get_db().execute("SELECT COUNT(*) FROM equipment_types WHERE name = 'Snorkel'").fetchone()[0] == 0

    def test_nested_joins_outer(self, app):
        with pytest.raises(RuntimeError):
            with transaction() as db:
                with transaction():
                    db.execute("INSERT INTO equipment_types (name) VALUES ('Snorkel')")
                assert db.in_transaction
                raise RuntimeError('abort')

        assert get_db().execute("SELECT COUNT(*) FROM equipment_types WHERE name = 'Snorkel'").fetchone()[0] == 0


class TestInitDb:
    """init_db options."""

    def test_seed_policies_flag(self, app):
        from database import init_db
        from models.pricing_policy import get_all_policies

        init_db(seed_policies=True)
        assert len(get_all_policies()) == 5

        init_db()
        assert get_all_policies() == []
