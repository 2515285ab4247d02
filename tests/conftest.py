"""
Pytest configuration and fixtures.
Every test gets its own database file and a controllable clock.
"""

from datetime import date, datetime, time
from types import SimpleNamespace

import pytest

TODAY = date(2030, 1, 10)


@pytest.fixture
def app(tmp_path):
    """Create test application with an isolated database file."""
    from app import create_app
    from database import init_db

    app = create_app('test')
    app.config['DATABASE_PATH'] = str(tmp_path / 'deportur_test.db')

    with app.app_context():
        init_db()
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def clock():
    """Clock whose 'today' tests can move with clock.today = ..."""
    fake = SimpleNamespace(today=TODAY)
    fake.get_today = lambda: fake.today
    fake.get_now = lambda: datetime.combine(fake.today, time(9, 0))
    return fake


@pytest.fixture
def seed(app):
    """IDs of the seeded catalog, keyed by name."""
    from database import get_db

    db = get_db()
    return {
        'destinations': {r['name']: r['id'] for r in db.execute('SELECT id, name FROM destinations')},
        'types': {r['name']: r['id'] for r in db.execute('SELECT id, name FROM equipment_types')},
        'equipment': {r['name']: r['id'] for r in db.execute('SELECT id, name FROM equipment')},
    }


@pytest.fixture
def customer(app):
    """A fresh BRONZE client."""
    from models.client import create_client

    return create_client('Laura', 'Gomez', '1020304050', email='laura@example.com')


@pytest.fixture
def service(app, clock):
    """Reservation service on the SQLite stores with the fake clock."""
    from models import catalog, pricing_policy, reservation, reservation_history
    from services.reservation_service import ReservationService

    return ReservationService(catalog, reservation, pricing_policy, clock, reservation_history)


@pytest.fixture
def checker(app, clock):
    """Availability checker on the SQLite stores with the fake clock."""
    from models import catalog, reservation
    from services.availability_service import AvailabilityChecker

    return AvailabilityChecker(catalog, reservation, clock)
