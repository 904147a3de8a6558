"""
Celery application factory.
"""

from celery import Celery
from celery.signals import setup_logging

celery_app = Celery("policy_rules")
celery_app.config_from_object("celeryconfig")

# Auto-discover tasks in these modules
celery_app.autodiscover_tasks([
    "app.tasks.batch_tasks",
])


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    """Route worker logs through structlog instead of Celery's own handlers."""
    from app.core.logging import setup_logging as configure_structlog

    configure_structlog()
