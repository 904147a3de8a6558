"""Batch jobs: renewal, recurring billing and the runner around them."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.batch.billing import RecurringBiller
from app.batch.control import StopFlag, request_stop, stop_key
from app.batch.persist import create_pending_run
from app.batch.registry import resolve_job
from app.batch.renewal import RenewalSelector, one_year_after
from app.batch.runner import BatchRunner
from app.core.constants import AuditOperation, BatchStatus, ClaimStatus, PaymentMethod, PolicyMarker
from app.db.models.agent import Agent
from app.db.models.audit_policy import AuditPolicyRecord
from app.db.models.batch_run import BatchRun
from app.db.models.payment import Payment
from app.db.models.policy import Policy
from app.repositories.claims import create_claim, set_claim_status
from app.repositories.payments import create_payment
from app.repositories.policies import create_policy
from app.rules.errors import ConstraintViolation, InvariantViolation, ReferenceNotFound

from tests.conftest import TODAY


async def _policy(session_factory, ctx, terms, *, paid=None, claims=(), **overrides) -> int:
    """Commit a policy with optional payments and claims; returns its id."""
    async with session_factory() as s:
        policy = await create_policy(s, ctx, **{**terms, **overrides})
        if paid is not None:
            await create_payment(
                s, ctx, policy_id=policy.id, amount=paid, payment_method=PaymentMethod.BANK_TRANSFER
            )
        for n, (amount, status) in enumerate(claims):
            claim = await create_claim(
                s, ctx, policy_id=policy.id, claim_amount=amount, incident_description=f"Incident {n}"
            )
            if status is not None:
                await set_claim_status(s, ctx, claim.id, status)
        await s.commit()
        return policy.id


async def _scalars(session_factory, stmt) -> list:
    async with session_factory() as s:
        return list((await s.execute(stmt)).scalars().all())


# ─── RenewalSelector ──────────────────────────────────────

def test_one_year_after():
    assert one_year_after(date(2026, 3, 31)) == date(2027, 3, 31)
    assert one_year_after(date(2028, 2, 29)) == date(2029, 2, 28)


async def test_renewal_creates_successor(session_factory, ctx, policy_terms, agent):
    source_id = await _policy(
        session_factory, ctx, policy_terms,
        paid=Decimal("1200.00"),
        claims=[(Decimal("500"), None)],
    )

    result = await BatchRunner(session_factory).run(RenewalSelector(), ctx)

    assert result.status == BatchStatus.COMPLETED
    assert result.selected == 1
    assert len(result.created_ids) == 1

    async with session_factory() as s:
        successor = await s.get(Policy, result.created_ids[0])
        assert successor.renewed_from_id == source_id
        assert successor.approval_marker == PolicyMarker.AUTO_RENEWED
        assert successor.start_date == TODAY
        assert successor.end_date == date(2027, 3, 31)
        assert successor.premium_amount == Decimal("1200.00")
        assert successor.customer_id == policy_terms["customer_id"]

        source = await s.get(Policy, source_id)
        assert source.approval_marker is None

        refreshed_agent = await s.get(Agent, agent.id)
        assert refreshed_agent.commission == Decimal("240.00")

    audit = await _scalars(
        session_factory,
        select(AuditPolicyRecord).where(AuditPolicyRecord.policy_id == result.created_ids[0]),
    )
    assert [r.operation for r in audit] == [AuditOperation.INSERT]
    assert audit[0].actor == ctx.actor


async def test_policy_without_claims_is_renewed(session_factory, ctx, policy_terms):
    await _policy(session_factory, ctx, policy_terms, paid=Decimal("1200.00"))

    result = await BatchRunner(session_factory).run(RenewalSelector(), ctx)

    assert result.succeeded == 1


@pytest.mark.parametrize(
    "overrides, paid, claims",
    [
        ({}, Decimal("1200.00"), [(Decimal("25000"), None)]),
        ({}, Decimal("1200.00"), [(Decimal("25000"), ClaimStatus.REJECTED)]),
        ({}, Decimal("1199.99"), []),
        ({}, None, []),
        ({"end_date": TODAY + timedelta(days=1)}, Decimal("1200.00"), []),
    ],
    ids=["pending-claim", "rejected-claim", "underpaid", "unpaid", "not-ended"],
)
async def test_renewal_skips_ineligible_policies(session_factory, ctx, policy_terms, overrides, paid, claims):
    await _policy(session_factory, ctx, policy_terms, paid=paid, claims=claims, **overrides)

    result = await BatchRunner(session_factory).run(RenewalSelector(), ctx)

    assert result.selected == 0
    assert result.status == BatchStatus.COMPLETED


async def test_approved_large_claim_does_not_block_renewal(session_factory, ctx, policy_terms):
    await _policy(
        session_factory, ctx, policy_terms,
        paid=Decimal("1200.00"),
        claims=[(Decimal("25000"), ClaimStatus.APPROVED)],
    )

    result = await BatchRunner(session_factory).run(RenewalSelector(), ctx)

    assert result.succeeded == 1


async def test_renewal_rerun_is_idempotent(session_factory, ctx, policy_terms):
    await _policy(session_factory, ctx, policy_terms, paid=Decimal("1200.00"))

    first = await BatchRunner(session_factory).run(RenewalSelector(), ctx)
    second = await BatchRunner(session_factory).run(RenewalSelector(), ctx)

    assert first.succeeded == 1
    assert second.selected == 0
    renewed = await _scalars(session_factory, select(Policy.id).where(Policy.renewed_from_id.is_not(None)))
    assert len(renewed) == 1


async def test_stale_selection_does_not_renew_twice(session_factory, ctx, policy_terms):
    source_id = await _policy(session_factory, ctx, policy_terms, paid=Decimal("1200.00"))

    class RenewTwice(RenewalSelector):
        async def select(self, session, ctx):
            return [source_id, source_id]

    result = await BatchRunner(session_factory).run(RenewTwice(), ctx)

    assert result.status == BatchStatus.COMPLETED
    assert len(result.created_ids) == 1
    assert result.failures == []


async def test_second_successor_is_rejected_by_the_store(session_factory, ctx, policy_terms):
    source_id = await _policy(session_factory, ctx, policy_terms, paid=Decimal("1200.00"))
    await _policy(session_factory, ctx, policy_terms, renewed_from_id=source_id)

    with pytest.raises(ConstraintViolation):
        await _policy(session_factory, ctx, policy_terms, renewed_from_id=source_id)


async def test_claim_filed_after_selection_blocks_renewal(session_factory, ctx, policy_terms):
    source_id = await _policy(session_factory, ctx, policy_terms, paid=Decimal("1200.00"))

    class ClaimArrivesMidRun(RenewalSelector):
        async def process(self, session, item_id, ctx):
            async with session_factory() as other:
                await create_claim(
                    other, ctx, policy_id=item_id, claim_amount=Decimal("25000"),
                    incident_description="Late filing",
                )
                await other.commit()
            return await super().process(session, item_id, ctx)

    result = await BatchRunner(session_factory).run(ClaimArrivesMidRun(), ctx)

    assert result.selected == 1
    assert result.created_ids == []
    renewed = await _scalars(session_factory, select(Policy.id).where(Policy.renewed_from_id == source_id))
    assert renewed == []


# ─── RecurringBiller ──────────────────────────────────────

async def test_billing_active_only(session_factory, ctx, policy_terms):
    active = await _policy(session_factory, ctx, policy_terms)
    await _policy(session_factory, ctx, policy_terms, end_date=TODAY - timedelta(days=1))
    await _policy(session_factory, ctx, policy_terms, start_date=TODAY + timedelta(days=1),
                  end_date=TODAY + timedelta(days=365))
    await _policy(session_factory, ctx, policy_terms, end_date=TODAY + timedelta(days=30),
                  approval_marker=PolicyMarker.EXPIRED.value)

    result = await BatchRunner(session_factory).run(RecurringBiller(active_only=True), ctx)

    assert result.selected == 1
    payments = await _scalars(session_factory, select(Payment))
    assert [(p.policy_id, p.payment_method, p.amount, p.payment_date) for p in payments] == [
        (active, PaymentMethod.AUTO_DEBIT, Decimal("1200.00"), TODAY)
    ]


async def test_billing_all_policies_when_filter_off(session_factory, ctx, policy_terms):
    await _policy(session_factory, ctx, policy_terms)
    await _policy(session_factory, ctx, policy_terms, end_date=TODAY - timedelta(days=1))

    result = await BatchRunner(session_factory).run(RecurringBiller(active_only=False), ctx)

    assert result.succeeded == 2


async def test_billing_is_idempotent_per_day(session_factory, ctx, policy_terms):
    await _policy(session_factory, ctx, policy_terms)

    first = await BatchRunner(session_factory).run(RecurringBiller(), ctx)
    second = await BatchRunner(session_factory).run(RecurringBiller(), ctx)

    assert first.succeeded == 1
    assert second.selected == 0
    count = await _scalars(session_factory, select(func.count()).select_from(Payment))
    assert count == [1]


async def test_double_charge_is_rejected_by_the_store(session_factory, ctx, policy_terms):
    policy_id = await _policy(session_factory, ctx, policy_terms)

    class BillTwice(RecurringBiller):
        async def select(self, session, ctx):
            return [policy_id, policy_id]

    result = await BatchRunner(session_factory).run(BillTwice(), ctx)

    assert result.succeeded == 1
    assert result.failures[0]["error_type"] == "ConstraintViolation"


async def test_billing_ignores_other_payment_methods(session_factory, ctx, policy_terms):
    await _policy(session_factory, ctx, policy_terms, paid=Decimal("50.00"))

    result = await BatchRunner(session_factory).run(RecurringBiller(), ctx)

    assert result.succeeded == 1


# ─── BatchRunner ──────────────────────────────────────────

async def test_failed_item_does_not_stop_the_run(session_factory, ctx, policy_terms):
    ids = [await _policy(session_factory, ctx, policy_terms) for _ in range(3)]

    class FlakyBiller(RecurringBiller):
        async def process(self, session, item_id, ctx):
            if item_id == ids[1]:
                raise InvariantViolation("card declined", entity="Policy", entity_id=item_id)
            return await super().process(session, item_id, ctx)

    result = await BatchRunner(session_factory).run(FlakyBiller(), ctx)

    assert result.status == BatchStatus.PARTIALLY_COMPLETED
    assert result.succeeded == 2
    assert result.failures == [
        {"item_id": ids[1], "error": "card declined", "error_type": "InvariantViolation"}
    ]
    billed = await _scalars(session_factory, select(Payment.policy_id).order_by(Payment.policy_id))
    assert billed == [ids[0], ids[2]]


async def test_unexpected_error_is_recorded(session_factory, ctx, policy_terms):
    await _policy(session_factory, ctx, policy_terms)

    class BrokenBiller(RecurringBiller):
        async def process(self, session, item_id, ctx):
            raise RuntimeError("gateway down")

    result = await BatchRunner(session_factory).run(BrokenBiller(), ctx)

    assert result.status == BatchStatus.FAILED
    assert result.failures[0]["error_type"] == "RuntimeError"


async def test_missing_item_is_a_reference_failure(session_factory, ctx):
    class GhostBiller(RecurringBiller):
        async def select(self, session, ctx):
            return [404]

    result = await BatchRunner(session_factory).run(GhostBiller(), ctx)

    assert result.failures[0]["error_type"] == ReferenceNotFound.__name__


async def test_selection_failure_fails_the_run(session_factory, ctx):
    class BadSelect(RecurringBiller):
        async def select(self, session, ctx):
            raise RuntimeError("bad query")

    result = await BatchRunner(session_factory).run(BadSelect(), ctx)

    assert result.status == BatchStatus.FAILED
    assert result.error == "Selection failed: bad query"
    assert result.items == []


async def test_stop_flag_halts_between_items(session_factory, ctx, policy_terms, redis_client):
    for _ in range(3):
        await _policy(session_factory, ctx, policy_terms)
    flag = StopFlag(redis_client, "billing")

    class StopAfterFirst(RecurringBiller):
        async def process(self, session, item_id, ctx):
            created = await super().process(session, item_id, ctx)
            await flag.request()
            return created

    stopped = await BatchRunner(session_factory, stop_flag=flag).run(StopAfterFirst(), ctx)

    assert stopped.status == BatchStatus.STOPPED
    assert stopped.selected == 3
    assert stopped.succeeded == 1

    resumed = await BatchRunner(session_factory, stop_flag=flag).run(RecurringBiller(), ctx)

    assert resumed.selected == 2
    assert resumed.status == BatchStatus.COMPLETED


async def test_stale_stop_request_is_cleared_on_start(session_factory, ctx, policy_terms, redis_client):
    await _policy(session_factory, ctx, policy_terms)
    await request_stop("billing", client=redis_client)
    assert await redis_client.exists(stop_key("billing"))

    result = await BatchRunner(
        session_factory, stop_flag=StopFlag(redis_client, "billing")
    ).run(RecurringBiller(), ctx)

    assert result.status == BatchStatus.COMPLETED


async def test_summary_is_persisted(session_factory, ctx, policy_terms):
    await _policy(session_factory, ctx, policy_terms)

    result = await BatchRunner(session_factory).run(RecurringBiller(), ctx)

    runs = await _scalars(session_factory, select(BatchRun))
    assert len(runs) == 1
    assert str(runs[0].id) == result.run_id
    assert runs[0].status == BatchStatus.COMPLETED
    assert runs[0].succeeded == 1
    assert runs[0].created_ids == result.created_ids
    assert runs[0].business_date == TODAY


async def test_pending_run_row_is_updated(session_factory, ctx):
    async with session_factory() as s:
        run = await create_pending_run(s, job_name="renewal", business_date=TODAY, actor=ctx.actor)
        run_id = str(run.id)
        await s.commit()

    await BatchRunner(session_factory).run(RenewalSelector(), ctx, run_id=run_id)

    runs = await _scalars(session_factory, select(BatchRun))
    assert len(runs) == 1
    assert runs[0].status == BatchStatus.COMPLETED
    assert runs[0].completed_at is not None


async def test_persist_disabled_writes_nothing(session_factory, ctx):
    await BatchRunner(session_factory, persist=False).run(RenewalSelector(), ctx)

    assert await _scalars(session_factory, select(BatchRun)) == []


def test_resolve_job():
    assert isinstance(resolve_job("renewal"), RenewalSelector)
    assert isinstance(resolve_job("billing"), RecurringBiller)
    with pytest.raises(ReferenceNotFound):
        resolve_job("payroll")
