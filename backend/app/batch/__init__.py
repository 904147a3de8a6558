"""
Batch jobs — scheduled set-based work with per-item transactions.

RenewalSelector and RecurringBiller run through BatchRunner, which
selects once, commits each item on its own, honours stop requests
between items and records a summary in ``batch_runs``.
"""

from app.batch.billing import RecurringBiller
from app.batch.job import BatchJob
from app.batch.renewal import RenewalSelector
from app.batch.result import BatchResult, ItemResult
from app.batch.runner import BatchRunner

__all__ = ["BatchJob", "BatchResult", "BatchRunner", "ItemResult", "RecurringBiller", "RenewalSelector"]
