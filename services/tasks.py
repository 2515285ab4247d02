"""
Celery tasks and beat schedule.

The reservation sweep runs as a periodic task: beat queues it every hour and
a worker runs it inside a Flask app context, so it uses the same database
connection handling as the CLI.

Run with:
    celery -A celery_worker worker --beat --loglevel=info
"""

import logging

from celery import Celery, Task, shared_task
from celery.schedules import crontab

logger = logging.getLogger(__name__)

SWEEP_TASK = 'reservations.sweep'


def celery_init_app(app) -> Celery:
    """
    Create the Celery app for a Flask app and register the beat schedule.

    Every task body runs inside the Flask app context.

    Returns:
        Celery: Also stored as app.extensions['celery']
    """

    class FlaskTask(Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app = Celery(app.name, task_cls=FlaskTask)
    celery_app.config_from_object(app.config['CELERY'])
    celery_app.conf.timezone = app.config.get('TIMEZONE', 'America/Bogota')
    celery_app.conf.beat_schedule = {
        # Start and finish reservations by date - every hour
        'sweep-reservations': {
            'task': SWEEP_TASK,
            'schedule': crontab(minute=app.config.get('SWEEP_MINUTE', 0)),
            'options': {'expires': 50 * 60},
        },
    }
    celery_app.set_default()
    app.extensions['celery'] = celery_app
    return celery_app


@shared_task(name=SWEEP_TASK)
def sweep_reservations() -> dict:
    """Advance CONFIRMED and IN_PROGRESS reservations by today's date."""
    from services import get_reservation_service

    summary = get_reservation_service().sweep()
    logger.info(
        f"[Sweep] Task done: checked={summary['checked']} started={summary['started']} "
        f"finished={summary['finished']} failed={summary['failed']}"
    )
    return summary
