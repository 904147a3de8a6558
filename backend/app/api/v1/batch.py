"""
Batch job endpoints — trigger, stop, and run history.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as redis
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db, get_redis, get_rule_context, require_writer
from app.api.schemas.batch import BatchRunRead, BatchStopResponse, BatchTriggerResponse
from app.batch.control import StopFlag
from app.batch.persist import create_pending_run
from app.batch.registry import resolve_job
from app.core.constants import BatchStatus
from app.db.models.batch_run import BatchRun
from app.rules.context import RuleContext
from app.tasks import batch_tasks

router = APIRouter(
    prefix="/batch",
    tags=["Batch"],
    dependencies=[Depends(get_current_user)],
)


# ─── Trigger ──────────────────────────────────────────────
@router.post(
    "/{job_name}/trigger",
    response_model=BatchTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_writer)],
)
async def trigger_batch(
    job_name: str,
    ctx: RuleContext = Depends(get_rule_context),
    db: AsyncSession = Depends(get_db),
) -> BatchTriggerResponse:
    """
    Queue a batch run.

    1. Creates a BatchRun row with status=PENDING (visible immediately)
    2. Commits it, then dispatches the Celery task
    3. Returns the run_id; the worker moves it to RUNNING and on to its final status
    """
    job = resolve_job(job_name)

    run = await create_pending_run(db, job_name=job.name, business_date=ctx.today, actor=ctx.actor)
    run_id = str(run.id)
    await db.commit()

    task_id = batch_tasks.dispatch(job.name, run_id=run_id, actor=ctx.actor)
    return BatchTriggerResponse(
        message="Batch run queued",
        run_id=run_id,
        job_name=job.name,
        celery_task_id=task_id,
        status=BatchStatus.PENDING,
    )


# ─── Stop ─────────────────────────────────────────────────
@router.post(
    "/{job_name}/stop",
    response_model=BatchStopResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_writer)],
)
async def stop_batch(job_name: str, client: redis.Redis = Depends(get_redis)) -> BatchStopResponse:
    """Ask a running job to stop after its current item."""
    job = resolve_job(job_name)
    await StopFlag(client, job.name).request()
    return BatchStopResponse(message="Stop requested", job_name=job.name)


# ─── Run history ──────────────────────────────────────────
@router.get("/runs", response_model=list[BatchRunRead])
async def list_batch_runs(
    job_name: str | None = None,
    run_status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> list[BatchRunRead]:
    query = select(BatchRun).order_by(desc(BatchRun.started_at))
    if job_name:
        query = query.where(BatchRun.job_name == job_name)
    if run_status:
        query = query.where(BatchRun.status == run_status)

    result = await db.execute(query.limit(limit).offset(offset))
    return [BatchRunRead.model_validate(r) for r in result.scalars().all()]


@router.get("/runs/{run_id}", response_model=BatchRunRead)
async def get_batch_run(run_id: UUID, db: AsyncSession = Depends(get_db)) -> BatchRunRead:
    run = await db.get(BatchRun, run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Batch run not found")
    return BatchRunRead.model_validate(run)
