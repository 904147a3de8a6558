"""Celery entry points for the batch jobs."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from app.db.models.batch_run import BatchRun
from app.repositories.payments import create_payment
from app.repositories.policies import create_policy
from app.tasks import batch_tasks
from celeryconfig import beat_schedule

from tests.conftest import TODAY


async def test_run_job_once_against_a_database(database_url, session_factory, ctx, policy_terms):
    async with session_factory() as s:
        policy = await create_policy(s, ctx, **policy_terms)
        await create_payment(s, ctx, policy_id=policy.id, amount=Decimal("1200.00"), payment_method="Card")
        await s.commit()

    summary = await batch_tasks.run_job_once(
        "renewal",
        actor="scheduler@policy-rules.local",
        business_date=TODAY.isoformat(),
        database_url=database_url,
        honour_stop=False,
    )

    assert summary["status"] == "COMPLETED"
    assert summary["succeeded"] == 1
    assert summary["business_date"] == "2026-03-31"

    async with session_factory() as s:
        runs = (await s.execute(select(BatchRun))).scalars().all()
    assert [r.actor for r in runs] == ["scheduler@policy-rules.local"]


def test_build_context_defaults_to_system_actor():
    ctx = batch_tasks._build_context(None, "2026-03-31")

    assert ctx.today == TODAY
    assert ctx.actor


def test_task_runs_the_named_job(monkeypatch):
    calls = []

    async def fake_run_job_once(job_name, **kwargs):
        calls.append((job_name, kwargs))
        return {"status": "COMPLETED", "selected": 0, "succeeded": 0, "failed": 0}

    monkeypatch.setattr(batch_tasks, "run_job_once", fake_run_job_once)

    result = batch_tasks.run_recurring_billing.apply(kwargs={"run_id": "r-1", "actor": "ops"}).get()

    assert result["status"] == "COMPLETED"
    assert calls == [("billing", {"run_id": "r-1", "actor": "ops", "business_date": None})]


def test_crashed_task_marks_the_run_failed(monkeypatch):
    marked = []

    async def crash(job_name, **kwargs):
        raise RuntimeError("database unreachable")

    async def fake_mark_failed(run_id):
        marked.append(run_id)

    monkeypatch.setattr(batch_tasks, "run_job_once", crash)
    monkeypatch.setattr(batch_tasks, "_mark_failed", fake_mark_failed)

    with pytest.raises(RuntimeError):
        batch_tasks.run_renewals.apply(kwargs={"run_id": "r-2"}).get()

    assert marked == ["r-2"]


def test_beat_schedules_both_jobs():
    tasks = {entry["task"] for entry in beat_schedule.values()}

    assert tasks == {batch_tasks.run_renewals.name, batch_tasks.run_recurring_billing.name}
