"""
BatchRunner — runs a BatchJob item by item.

    1. Selection: one statement in one read transaction.  The candidate
       ids are materialised before any item is touched.
    2. Items: each in its own session + transaction via
       run_in_transaction (conflicts retried with backoff).  A failed
       item is logged and recorded; the run carries on.
    3. Between items the stop flag is polled.  Committed items stay
       committed; the rest are picked up by the next run.
    4. The summary is persisted to ``batch_runs`` and returned.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.batch.control import StopFlag
from app.batch.job import BatchJob
from app.batch.persist import mark_run_status, persist_batch_result
from app.batch.result import BatchResult, ItemResult
from app.core.constants import BatchStatus, ItemStatus
from app.db.transaction import run_in_transaction, translate_db_errors
from app.rules.context import RuleContext
from app.rules.errors import RuleError


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class BatchRunner:
    """
    Usage::

        runner = BatchRunner(async_session, stop_flag=StopFlag(redis, "renewal"))
        result = await runner.run(RenewalSelector(), RuleContext.system())
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        stop_flag: StopFlag | None = None,
        max_attempts: int | None = None,
        persist: bool = True,
    ) -> None:
        self.session_factory = session_factory
        self.stop_flag = stop_flag
        self.max_attempts = max_attempts
        self.persist = persist
        self.logger = structlog.get_logger("batch.runner")

    async def run(
        self,
        job: BatchJob,
        ctx: RuleContext,
        *,
        run_id: str | None = None,
    ) -> BatchResult:
        result = BatchResult(job_name=job.name, business_date=ctx.today, actor=ctx.actor)
        if run_id:
            result.run_id = run_id
        result.started_at = datetime.now(timezone.utc)
        clock = time.perf_counter()

        log = self.logger.bind(job=job.name, run_id=result.run_id, business_date=str(ctx.today))
        log.info("Batch started", description=job.description, actor=ctx.actor)

        if self.persist and run_id:
            await mark_run_status(self.session_factory, run_id, BatchStatus.RUNNING)
        if self.stop_flag is not None:
            await self.stop_flag.clear()

        # ── Selection ─────────────────────────────
        try:
            candidates = await self._select(job, ctx)
        except Exception as exc:
            log.exception("Batch selection failed", error=str(exc))
            result.error = f"Selection failed: {exc}"
            return await self._finish(result, clock, log)

        result.selected = len(candidates)
        log.info("Candidates selected", selected=result.selected)

        # ── Items ─────────────────────────────────
        for index, item_id in enumerate(candidates):
            if await self._stop_requested():
                result.stopped = True
                log.warning(
                    "Stop requested, leaving remaining items for the next run",
                    processed=index,
                    remaining=len(candidates) - index,
                )
                break

            item = await self._process_item(job, item_id, ctx, log)
            result.items.append(item)

        return await self._finish(result, clock, log)

    async def _select(self, job: BatchJob, ctx: RuleContext) -> list[int]:
        async with self.session_factory() as session:
            with translate_db_errors():
                async with session.begin():
                    return list(await job.select(session, ctx))

    async def _stop_requested(self) -> bool:
        if self.stop_flag is None:
            return False
        return await self.stop_flag.is_set()

    async def _process_item(
        self,
        job: BatchJob,
        item_id: int,
        ctx: RuleContext,
        log: structlog.BoundLogger,
    ) -> ItemResult:
        item_log = log.bind(item_id=item_id)
        clock = time.perf_counter()

        async def operation(session: AsyncSession) -> int | None:
            return await job.process(session, item_id, ctx)

        try:
            created_id = await run_in_transaction(
                self.session_factory, operation, max_attempts=self.max_attempts
            )
        except RuleError as exc:
            item_log.warning("Item failed", error=str(exc), error_type=type(exc).__name__)
            return ItemResult(
                item_id=item_id,
                status=ItemStatus.FAILED,
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=_elapsed_ms(clock),
            )
        except Exception as exc:
            item_log.exception("Unexpected error in item", error=str(exc))
            return ItemResult(
                item_id=item_id,
                status=ItemStatus.FAILED,
                error=f"Unexpected: {exc}",
                error_type=type(exc).__name__,
                duration_ms=_elapsed_ms(clock),
            )

        item_log.info("Item committed", created_id=created_id)
        return ItemResult(
            item_id=item_id,
            status=ItemStatus.COMPLETED,
            created_id=created_id,
            duration_ms=_elapsed_ms(clock),
        )

    async def _finish(
        self,
        result: BatchResult,
        clock: float,
        log: structlog.BoundLogger,
    ) -> BatchResult:
        result.completed_at = datetime.now(timezone.utc)
        result.duration_ms = _elapsed_ms(clock)
        result.finalise()

        if self.persist:
            await persist_batch_result(self.session_factory, result)

        log.info(
            "Batch finished",
            status=result.status,
            selected=result.selected,
            succeeded=result.succeeded,
            failed=result.failed,
            stopped=result.stopped,
            duration_ms=result.duration_ms,
        )
        return result
