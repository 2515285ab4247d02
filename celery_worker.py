"""
Celery entry point for the worker and beat processes.

    celery -A celery_worker worker --beat --loglevel=info
"""

from app import create_app

flask_app = create_app()
celery_app = flask_app.extensions['celery']
