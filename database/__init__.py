"""
Database package for the DeporTur reservation system.

This package provides modular database operations:
- connection: Connection management (get_db, close_db, init_db, transaction)
- schema: Table creation and indexes
- seed: Initial seed data

For convenience, the public functions are re-exported from this module.
"""

from database.connection import get_db, close_db, init_db, transaction
from database.schema import drop_tables, create_tables, create_indexes
from database.seed import seed_database, seed_default_policies

__all__ = [
    # Connection
    'get_db',
    'close_db',
    'init_db',
    'transaction',
    # Schema
    'drop_tables',
    'create_tables',
    'create_indexes',
    # Seed
    'seed_database',
    'seed_default_policies',
]
