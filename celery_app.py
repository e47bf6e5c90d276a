"""
Celery Application Instance

Creates the Celery app instance for use by workers and beat scheduler.
Uses the app factory to ensure all services are properly initialized.

Run with REAPER_MODE=celery so the web process does not also start the
in-process reaper thread.
"""

from app_factory import create_app
from dropbin.config.celery_config import make_celery

# Create Flask app with all services initialized (including dependency container)
flask_app = create_app()

# Get Celery instance from Flask app
celery_app = flask_app.celery or make_celery(flask_app)

# Task modules are imported by name when the worker starts, after
# `celery_app` exists, so task decorators bind to this instance.
celery_app.conf.imports = ("dropbin.tasks.cleanup_task",)
