"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Config:
    """Base configuration class with common settings."""

    # Database configuration
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or 'instance/deportur.db'
    # Seconds a writer waits on SQLite's lock before the operation fails with a conflict
    DB_BUSY_TIMEOUT = float(os.environ.get('DB_BUSY_TIMEOUT', 5))

    # Timezone used for "today" when validating and sweeping reservations
    TIMEZONE = os.environ.get('TIMEZONE') or 'America/Bogota'

    # Celery worker and beat (hourly CONFIRMED -> IN_PROGRESS -> FINISHED sweep)
    CELERY = {
        'broker_url': os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
        'result_backend': os.environ.get('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0'),
        'task_ignore_result': True,
    }
    # Minute past each hour when beat queues the sweep
    SWEEP_MINUTE = int(os.environ.get('SWEEP_MINUTE', 0))

    # Insert the legacy tier/duration percentages as ordinary policies on init-db
    SEED_DEFAULT_POLICIES = True

    # Actor recorded in the history when a caller does not name one
    DEFAULT_ACTOR = 'USER'

    LOG_DIR = os.environ.get('LOG_DIR') or 'logs'

    # Application settings
    APP_NAME = 'DeporTur'
    APP_VERSION = '2.0.0'


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False

    DATABASE_PATH = os.environ.get('DATABASE_PATH') or Config.DATABASE_PATH

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        if not os.environ.get('DATABASE_PATH'):
            raise ValueError("DATABASE_PATH environment variable must be set in production")
        if os.environ.get('DATABASE_PATH') == ':memory:':
            raise ValueError("DATABASE_PATH cannot be ':memory:' in production")

        timezone = os.environ.get('TIMEZONE') or Config.TIMEZONE
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"TIMEZONE '{timezone}' is not a known timezone") from e

        if not os.environ.get('CELERY_BROKER_URL'):
            raise ValueError("CELERY_BROKER_URL environment variable must be set in production")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    DATABASE_PATH = os.environ.get('DATABASE_PATH', ':memory:')
    DB_BUSY_TIMEOUT = 2.0
    SEED_DEFAULT_POLICIES = False
    # Tasks run inline; nothing talks to a broker
    CELERY = {
        'broker_url': 'memory://',
        'result_backend': 'cache+memory://',
        'task_always_eager': True,
        'task_eager_propagates': True,
        'task_ignore_result': True,
    }


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
