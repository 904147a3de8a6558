"""
Celery tasks — scheduled batch jobs.

Each task is a single "run once" entry point.  The async runner is
driven with asyncio.run() on a FRESH engine per call, so the worker's
event loop never shares pooled connections with another loop.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any

import structlog

from app.batch.control import StopFlag, make_redis
from app.batch.persist import mark_run_status
from app.batch.registry import resolve_job
from app.batch.runner import BatchRunner
from app.core.constants import BatchJobName, BatchStatus
from app.db.session import make_engine, make_session_factory
from app.rules.context import RuleContext
from app.tasks import celery_app

logger = structlog.get_logger("tasks.batch")


def _build_context(actor: str | None, business_date: str | None) -> RuleContext:
    if business_date:
        return RuleContext.for_day(actor or RuleContext.system().actor, date.fromisoformat(business_date))
    return RuleContext.system(actor=actor)


async def run_job_once(
    job_name: str,
    *,
    run_id: str | None = None,
    actor: str | None = None,
    business_date: str | None = None,
    database_url: str | None = None,
    redis_url: str | None = None,
    honour_stop: bool = True,
) -> dict[str, Any]:
    """Run ``job_name`` to completion and return its summary dict."""
    job = resolve_job(job_name)
    ctx = _build_context(actor, business_date)

    engine = make_engine(database_url)
    factory = make_session_factory(engine)
    client = make_redis(redis_url) if honour_stop else None
    try:
        runner = BatchRunner(
            factory,
            stop_flag=StopFlag(client, job.name) if client is not None else None,
        )
        result = await runner.run(job, ctx, run_id=run_id)
        return result.to_dict()
    finally:
        if client is not None:
            await client.aclose()
        await engine.dispose()


async def _mark_failed(run_id: str) -> None:
    engine = make_engine()
    try:
        await mark_run_status(make_session_factory(engine), run_id, BatchStatus.FAILED)
    finally:
        await engine.dispose()


def _run(task, job_name: str, run_id: str | None, actor: str | None, business_date: str | None) -> dict:
    task_log = logger.bind(task_id=task.request.id, job=job_name, run_id=run_id)
    task_log.info("Batch task started")
    try:
        summary = asyncio.run(
            run_job_once(job_name, run_id=run_id, actor=actor, business_date=business_date)
        )
    except Exception as exc:
        task_log.exception("Batch task crashed", error=str(exc))
        if run_id:
            try:
                asyncio.run(_mark_failed(run_id))
            except Exception as mark_exc:
                task_log.warning("Failed to set FAILED status", error=str(mark_exc))
        raise

    task_log.info(
        "Batch task finished",
        status=summary["status"],
        selected=summary["selected"],
        succeeded=summary["succeeded"],
        failed=summary["failed"],
    )
    return summary


@celery_app.task(bind=True, name="app.tasks.batch_tasks.run_renewals")
def run_renewals(
    self,
    run_id: str | None = None,
    actor: str | None = None,
    business_date: str | None = None,
):
    """Daily RenewalSelector run."""
    return _run(self, BatchJobName.RENEWAL.value, run_id, actor, business_date)


@celery_app.task(bind=True, name="app.tasks.batch_tasks.run_recurring_billing")
def run_recurring_billing(
    self,
    run_id: str | None = None,
    actor: str | None = None,
    business_date: str | None = None,
):
    """Daily RecurringBiller run."""
    return _run(self, BatchJobName.BILLING.value, run_id, actor, business_date)


JOB_TASKS = {
    BatchJobName.RENEWAL.value: run_renewals,
    BatchJobName.BILLING.value: run_recurring_billing,
}


def dispatch(job_name: str, *, run_id: str, actor: str) -> str:
    """Queue the task for ``job_name``; returns the Celery task id."""
    task = JOB_TASKS[job_name].delay(run_id=run_id, actor=actor)
    logger.info("Batch task queued", job=job_name, run_id=run_id, task_id=task.id)
    return task.id
