"""
DeporTur - Sports Equipment Rental Reservations
Flask application factory and initialization
"""

import os
import click
import logging
from flask import Flask
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import database functions
from database import close_db, init_db, get_db


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    config_class = config[config_name]
    if config_name == 'production':
        config_class.validate()
    app.config.from_object(config_class)

    # Register CLI commands
    register_cli_commands(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    # Celery app and the periodic reservation sweep
    init_celery(app)

    return app


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    @click.option('--with-policies/--without-policies', default=None,
                  help='Seed the default loyalty and duration policies (defaults to SEED_DEFAULT_POLICIES).')
    def init_db_command(with_policies):
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db(seed_policies=with_policies)
        click.echo('Database initialized successfully!')

    @app.cli.command('seed-policies')
    def seed_policies_command():
        """Insert the default loyalty and duration pricing policies."""
        from database.seed import seed_default_policies

        with app.app_context():
            db = get_db()
            seed_default_policies(db)
            db.commit()
        click.echo('Default pricing policies created.')

    @app.cli.command('sweep-reservations')
    def sweep_reservations_command():
        """Advance confirmed and in-progress reservations by today's date."""
        from services import get_reservation_service

        with app.app_context():
            summary = get_reservation_service().sweep()
        click.echo(
            f"Checked {summary['checked']}: {summary['started']} started, "
            f"{summary['finished']} finished, {summary['failed']} failed"
        )

    @app.cli.command('check-availability')
    @click.argument('equipment_id', type=int)
    @click.argument('start_date')
    @click.argument('end_date')
    def check_availability_command(equipment_id, start_date, end_date):
        """Check whether one equipment item is free between two dates (YYYY-MM-DD)."""
        from exceptions import ReservationError
        from services import get_availability_checker
        from utils.datetime_helpers import parse_date

        with app.app_context():
            try:
                available = get_availability_checker().is_available(
                    equipment_id, parse_date(start_date), parse_date(end_date)
                )
            except ReservationError as e:
                raise click.ClickException(str(e))

        if available:
            click.echo(f'Equipment {equipment_id} is available from {start_date} to {end_date}')
        else:
            click.echo(f'Equipment {equipment_id} is NOT available from {start_date} to {end_date}')


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        log_dir = app.config.get('LOG_DIR', 'logs')
        if not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(os.path.join(log_dir, 'deportur.log'))
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)

        # Module loggers propagate to the root logger
        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('DeporTur startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)
        logging.getLogger().setLevel(logging.DEBUG)


def init_celery(app):
    """Attach the Celery app that runs the periodic reservation sweep."""
    from services.tasks import celery_init_app

    return celery_init_app(app)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', debug=True)
