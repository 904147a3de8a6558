"""
Batch persistence — writes run summaries to ``batch_runs``.

The trigger endpoint creates a PENDING row and hands its id to the
worker; the runner then UPDATES that row.  Runs started without a row
(beat schedule, CLI) get a new one.
"""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.batch.result import BatchResult
from app.core.constants import BatchStatus
from app.core.logging import get_logger
from app.db.models.batch_run import BatchRun

logger = get_logger(__name__)


def _as_uuid(value: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None


async def create_pending_run(
    session: AsyncSession,
    *,
    job_name: str,
    business_date: date,
    actor: str,
) -> BatchRun:
    """Insert a PENDING run row inside the caller's transaction."""
    run = BatchRun(
        job_name=job_name,
        business_date=business_date,
        actor=actor,
        status=BatchStatus.PENDING.value,
        failures=[],
        created_ids=[],
    )
    session.add(run)
    await session.flush()
    return run


async def mark_run_status(
    session_factory: async_sessionmaker[AsyncSession],
    run_id: str,
    status: str,
) -> None:
    run_uuid = _as_uuid(run_id)
    if run_uuid is None:
        return
    async with session_factory() as session:
        async with session.begin():
            await session.execute(
                update(BatchRun).where(BatchRun.id == run_uuid).values(status=status)
            )


async def persist_batch_result(
    session_factory: async_sessionmaker[AsyncSession],
    result: BatchResult,
) -> str | None:
    """
    Upsert the run summary.  Returns the run id, or None when the write
    failed; a failed summary write never undoes the items already
    committed, so it is logged rather than raised.
    """
    try:
        async with session_factory() as session:
            async with session.begin():
                run = None
                run_uuid = _as_uuid(result.run_id)
                if run_uuid is not None:
                    run = (
                        await session.execute(select(BatchRun).where(BatchRun.id == run_uuid))
                    ).scalar_one_or_none()

                mode = "update" if run is not None else "create"
                if run is None:
                    run = BatchRun(
                        id=run_uuid or uuid.uuid4(),
                        job_name=result.job_name,
                        business_date=result.business_date,
                        actor=result.actor,
                    )
                    session.add(run)

                run.status = result.status
                run.selected = result.selected
                run.succeeded = result.succeeded
                run.failed = result.failed
                run.stopped = result.stopped
                run.started_at = result.started_at or run.started_at
                run.completed_at = result.completed_at
                run.duration_ms = result.duration_ms
                run.error_message = result.error
                run.failures = result.failures
                run.created_ids = result.created_ids
                await session.flush()
                run_id = str(run.id)

        logger.info(
            "Batch result persisted",
            run_id=run_id,
            job=result.job_name,
            status=result.status,
            mode=mode,
        )
        return run_id

    except Exception as exc:
        logger.error(
            "Failed to persist batch result (non-fatal)",
            run_id=result.run_id,
            job=result.job_name,
            error=str(exc),
        )
        return None


async def recent_runs(limit: int = 10, database_url: str | None = None) -> list[dict]:
    """Latest runs as plain dicts, on a fresh engine (CLI use)."""
    from app.db.session import make_engine, make_session_factory

    engine = make_engine(database_url)
    try:
        async with make_session_factory(engine)() as session:
            result = await session.execute(
                select(BatchRun).order_by(BatchRun.started_at.desc()).limit(limit)
            )
            return [
                {
                    "id": str(r.id),
                    "job_name": r.job_name,
                    "business_date": r.business_date.isoformat(),
                    "status": r.status,
                    "selected": r.selected,
                    "succeeded": r.succeeded,
                    "failed": r.failed,
                    "stopped": r.stopped,
                    "started_at": r.started_at.isoformat() if r.started_at else None,
                    "error_message": r.error_message,
                }
                for r in result.scalars().all()
            ]
    finally:
        await engine.dispose()
