"""
Cleanup Task

Celery beat task that runs the expiration reaper.
Thin wrapper that delegates to the application layer.
"""

import logging

from celery import shared_task
from flask import current_app

from dropbin.application.expiration_reaper import ExpirationReaper
from dropbin.config.celery_config import REAP_TASK_NAME

logger = logging.getLogger(__name__)


@shared_task(name=REAP_TASK_NAME)
def reap_expired_entries() -> dict:
    """
    Periodic task that reclaims expired and exhausted entries.

    Runs inside the Flask app context (ContextTask) and resolves the reaper
    from the app's DependencyContainer, never building infrastructure itself.

    Returns:
        dict: ReapReport statistics
    """
    logger.info("Starting expiration reaper task")

    container = getattr(current_app, "container", None)
    if container is None or not container.is_registered(ExpirationReaper):
        error_msg = "Expiration reaper is not registered"
        logger.error(error_msg)
        return {"scanned": 0, "reclaimed": 0, "failed": 0, "orphans_removed": 0, "errors": [error_msg]}

    reaper = container.resolve(ExpirationReaper)
    report = reaper.run_cycle()

    if report.errors:
        logger.warning(f"Expiration reaper errors: {report.errors}")

    return report.to_dict()
