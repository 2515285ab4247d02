"""
Database connection management.
Handles per-context connections, type conversion, transactions and initialization.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal

from flask import g, current_app

from exceptions import ConflictError

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def _convert_decimal(raw: bytes) -> Decimal:
    """Read a DECIMAL column without rounding; whole numbers and tenths are padded to cents."""
    value = Decimal(raw.decode())
    if value.as_tuple().exponent > -2:
        value = value.quantize(CENT)
    return value


# Money and percentages travel as Decimal, dates as date, timestamps as datetime
sqlite3.register_adapter(Decimal, str)
sqlite3.register_adapter(date, lambda value: value.isoformat())
sqlite3.register_adapter(datetime, lambda value: value.isoformat(sep=' '))
sqlite3.register_converter('DECIMAL', _convert_decimal)
sqlite3.register_converter('DATE', lambda raw: date.fromisoformat(raw.decode()[:10]))
sqlite3.register_converter('TIMESTAMP', lambda raw: datetime.fromisoformat(raw.decode()))


def get_db():
    """
    Get the database connection bound to the current app context.

    Returns:
        sqlite3.Connection: Database connection object
    """
    if 'db' not in g:
        db_path = current_app.config.get('DATABASE_PATH', 'instance/deportur.db')
        if db_path != ':memory:':
            folder = os.path.dirname(db_path)
            if folder and not os.path.exists(folder):
                os.makedirs(folder, exist_ok=True)
        g.db = sqlite3.connect(
            db_path,
            timeout=current_app.config.get('DB_BUSY_TIMEOUT', 5),
            detect_types=sqlite3.PARSE_DECLTYPES,
            check_same_thread=False
        )
        g.db.row_factory = sqlite3.Row
        # Enable foreign key constraints
        g.db.execute('PRAGMA foreign_keys = ON')
        # Enable WAL mode for better concurrency
        g.db.execute('PRAGMA journal_mode = WAL')
    return g.db


def close_db(e=None):
    """
    Close database connection.

    Args:
        e: Exception if any (from Flask teardown context)
    """
    db = g.pop('db', None)
    if db is not None:
        db.close()


def _is_lock_error(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return 'locked' in message or 'busy' in message


@contextmanager
def transaction():
    """
    Run a block as one write transaction.

    Takes SQLite's write lock up front (BEGIN IMMEDIATE) so that reads done
    inside the block, such as availability checks, cannot be invalidated by
    another writer before the commit. Nested use joins the outer transaction.

    Raises:
        ConflictError: If the lock cannot be obtained within DB_BUSY_TIMEOUT
    """
    db = get_db()

    if db.in_transaction:
        yield db
        return

    try:
        db.execute('BEGIN IMMEDIATE')
    except sqlite3.OperationalError as e:
        if _is_lock_error(e):
            logger.warning(f"[DB] Write lock not acquired: {e}")
            raise ConflictError('Another operation is writing; retry the request', retryable=True) from e
        raise

    try:
        yield db
        db.commit()
    except sqlite3.OperationalError as e:
        db.rollback()
        if _is_lock_error(e):
            raise ConflictError('Concurrent write conflict; retry the request', retryable=True) from e
        raise
    except Exception:
        db.rollback()
        raise


def init_db(seed_policies: bool = None):
    """
    Initialize database: drop existing tables, create new schema, insert seed data.
    WARNING: This will delete all existing data!

    Args:
        seed_policies: Override for SEED_DEFAULT_POLICIES
    """
    from database.schema import drop_tables, create_tables, create_indexes
    from database.seed import seed_database

    if seed_policies is None:
        seed_policies = current_app.config.get('SEED_DEFAULT_POLICIES', True)

    db = get_db()

    # Drop existing tables (in reverse order of dependencies)
    drop_tables(db)

    # Create all tables
    create_tables(db)

    # Create indexes
    create_indexes(db)

    # Insert seed data
    seed_database(db, seed_policies=seed_policies)

    db.commit()
    logger.info("Database initialized successfully")
