"""
Job registry — maps a job name to its BatchJob.

To add a job:
    1. Subclass BatchJob in this package
    2. Register it in JOB_REGISTRY below
    3. Add a Celery task and a beat entry if it should run on a schedule
"""

from __future__ import annotations

from typing import Callable

from app.batch.billing import RecurringBiller
from app.batch.job import BatchJob
from app.batch.renewal import RenewalSelector
from app.core.constants import BatchJobName
from app.rules.errors import ReferenceNotFound

JOB_REGISTRY: dict[str, Callable[[], BatchJob]] = {
    BatchJobName.RENEWAL: RenewalSelector,
    BatchJobName.BILLING: RecurringBiller,
}


def resolve_job(name: str) -> BatchJob:
    """Instantiate the job registered under ``name``."""
    factory = JOB_REGISTRY.get(name)
    if factory is None:
        raise ReferenceNotFound(
            f"Unknown batch job '{name}'. Available: {', '.join(sorted(JOB_REGISTRY))}",
            entity="BatchJob",
            entity_id=name,
        )
    return factory()
