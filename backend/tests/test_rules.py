"""Tests for the synchronous rules: classifier, expirer, commission, audit."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.constants import AuditOperation, ClaimStatus, PolicyMarker
from app.db.models.agent import Agent
from app.db.models.audit_policy import AuditPolicyRecord
from app.db.models.policy import Policy
from app.db.transaction import run_in_transaction
from app.repositories.claims import create_claim
from app.repositories.policies import create_policy, delete_policy, update_policy
from app.rules.base import HookPhase, Rule
from app.rules.claim_classifier import classify_claim
from app.rules.commission_accrual import CommissionAccrual, commission_for
from app.rules.context import RuleContext
from app.rules.errors import ReferenceNotFound
from app.rules.policy_expirer import is_expired
from app.rules.registry import RuleRegistry, build_default_registry

from tests.conftest import TODAY


async def _audit_rows(session, policy_id: int) -> list[AuditPolicyRecord]:
    result = await session.execute(
        select(AuditPolicyRecord)
        .where(AuditPolicyRecord.policy_id == policy_id)
        .order_by(AuditPolicyRecord.id)
    )
    return list(result.scalars().all())


# ─── ClaimClassifier ──────────────────────────────────────

@pytest.mark.parametrize(
    "amount, expected",
    [
        (Decimal("9999.99"), ClaimStatus.APPROVED),
        (Decimal("10000"), ClaimStatus.PENDING),
        (Decimal("10000.01"), ClaimStatus.PENDING),
        (Decimal("0"), ClaimStatus.APPROVED),
        (Decimal("-50"), ClaimStatus.APPROVED),
        (250, ClaimStatus.APPROVED),
    ],
)
def test_classify_claim_threshold(amount, expected):
    assert classify_claim(amount) == expected


def test_classify_claim_custom_limit():
    assert classify_claim(Decimal("600"), limit=Decimal("500")) == ClaimStatus.PENDING


async def test_claim_status_assigned_on_insert(session, ctx, policy_terms):
    policy = await create_policy(session, ctx, **policy_terms)

    small = await create_claim(
        session, ctx, policy_id=policy.id, claim_amount=Decimal("9999.99"), incident_description="Glass"
    )
    large = await create_claim(
        session, ctx, policy_id=policy.id, claim_amount=Decimal("10000"), incident_description="Flood"
    )

    assert small.status == ClaimStatus.APPROVED
    assert large.status == ClaimStatus.PENDING
    assert small.claim_date == TODAY


# ─── PolicyExpirer ────────────────────────────────────────

def test_is_expired_is_strict():
    assert is_expired(TODAY - timedelta(days=1), TODAY)
    assert not is_expired(TODAY, TODAY)
    assert not is_expired(TODAY + timedelta(days=1), TODAY)


async def test_update_past_end_date_marks_expired(session, ctx, policy_terms):
    policy_terms["approval_marker"] = "underwriter@policy-rules.local"
    policy_terms["end_date"] = TODAY - timedelta(days=1)
    policy = await create_policy(session, ctx, **policy_terms)

    updated = await update_policy(session, ctx, policy.id, policy_type="Health Plus")

    assert updated.approval_marker == PolicyMarker.EXPIRED
    assert updated.policy_type == "Health Plus"


async def test_update_ending_today_keeps_marker(session, ctx, policy_terms):
    policy_terms["approval_marker"] = "underwriter@policy-rules.local"
    policy = await create_policy(session, ctx, **policy_terms)

    updated = await update_policy(session, ctx, policy.id, coverage_amount=Decimal("600000.00"))

    assert updated.approval_marker == "underwriter@policy-rules.local"


async def test_expiry_overrides_explicit_marker_and_is_idempotent(session, ctx, policy_terms):
    policy_terms["end_date"] = TODAY - timedelta(days=10)
    policy = await create_policy(session, ctx, **policy_terms)

    first = await update_policy(session, ctx, policy.id, approval_marker="someone@policy-rules.local")
    assert first.approval_marker == PolicyMarker.EXPIRED

    second = await update_policy(session, ctx, policy.id)
    assert second.approval_marker == PolicyMarker.EXPIRED


async def test_expiry_change_is_recorded_in_audit(session, ctx, policy_terms):
    policy_terms["end_date"] = TODAY - timedelta(days=1)
    policy = await create_policy(session, ctx, **policy_terms)

    await update_policy(session, ctx, policy.id)

    rows = await _audit_rows(session, policy.id)
    assert rows[-1].operation == AuditOperation.UPDATE
    assert rows[-1].details == {"changes": {"approval_marker": "Expired"}}


# ─── CommissionAccrual ────────────────────────────────────

def test_commission_for_rounds_to_cents():
    assert commission_for(Decimal("1200.00")) == Decimal("120.00")
    assert commission_for(Decimal("333.35")) == Decimal("33.34")
    assert commission_for(Decimal("100"), rate=Decimal("0.05")) == Decimal("5.00")


async def test_commission_accrues_once_per_insert(session_factory, ctx, policy_terms, agent):
    async with session_factory() as s:
        await create_policy(s, ctx, **policy_terms)
        await create_policy(s, ctx, **{**policy_terms, "premium_amount": Decimal("800.00")})
        await s.commit()

    async with session_factory() as s:
        refreshed = await s.get(Agent, agent.id)
        assert refreshed.commission == Decimal("200.00")


async def test_commission_not_accrued_on_update(session_factory, ctx, policy_terms, agent):
    async with session_factory() as s:
        policy = await create_policy(s, ctx, **policy_terms)
        await s.commit()

    async with session_factory() as s:
        await update_policy(s, ctx, policy.id, premium_amount=Decimal("5000.00"))
        await s.commit()

    async with session_factory() as s:
        refreshed = await s.get(Agent, agent.id)
        assert refreshed.commission == Decimal("120.00")


async def test_policy_without_agent_accrues_nothing(session, ctx, policy_terms, agent):
    policy_terms["agent_id"] = None
    await create_policy(session, ctx, **policy_terms)

    refreshed = await session.get(Agent, agent.id)
    await session.refresh(refreshed)
    assert refreshed.commission == Decimal("0.00")


async def test_concurrent_policy_creation_loses_no_commission(session_factory, ctx, policy_terms, agent):
    async def create(session):
        policy = await create_policy(session, ctx, **policy_terms)
        return policy.id

    ids = await asyncio.gather(
        *(run_in_transaction(session_factory, create, max_attempts=20, base_delay=0.01) for _ in range(5))
    )

    assert len(set(ids)) == 5
    async with session_factory() as s:
        refreshed = await s.get(Agent, agent.id)
        assert refreshed.commission == Decimal("600.00")


async def test_missing_agent_row_raises_reference_not_found(session, ctx):
    orphan = Policy(id=1, agent_id=9999, premium_amount=Decimal("100.00"))

    with pytest.raises(ReferenceNotFound) as exc_info:
        await CommissionAccrual().after_insert(session, orphan, ctx)

    assert exc_info.value.entity == "Agent"
    assert exc_info.value.entity_id == 9999


# ─── AuditLogger ──────────────────────────────────────────

async def test_every_mutation_writes_one_audit_row(session, ctx, policy_terms):
    policy = await create_policy(session, ctx, **policy_terms)
    policy_id = policy.id
    await update_policy(session, ctx, policy_id, coverage_amount=Decimal("750000.00"))
    await delete_policy(session, ctx, policy_id)

    rows = await _audit_rows(session, policy_id)

    assert [r.operation for r in rows] == ["INSERT", "UPDATE", "DELETE"]
    assert all(r.actor == ctx.actor for r in rows)
    assert rows[1].details == {"changes": {"coverage_amount": "750000.00"}}
    assert await session.get(Policy, policy_id) is None


async def test_audit_rolls_back_with_the_mutation(session_factory, ctx, policy_terms):
    async with session_factory() as s:
        policy = await create_policy(s, ctx, **policy_terms)
        policy_id = policy.id
        await s.rollback()

    async with session_factory() as s:
        assert await _audit_rows(s, policy_id) == []
        assert await s.get(Policy, policy_id) is None


# ─── RuleContext / registry ───────────────────────────────

def test_rule_context_today_uses_business_timezone():
    late_utc = datetime(2026, 3, 31, 22, 30, tzinfo=timezone.utc)
    assert RuleContext("a", now=late_utc, business_timezone="UTC").today == date(2026, 3, 31)
    assert RuleContext("a", now=late_utc, business_timezone="Asia/Kolkata").today == date(2026, 4, 1)


def test_rule_context_rejects_naive_clock_and_blank_actor():
    with pytest.raises(ValueError):
        RuleContext("a", now=datetime(2026, 1, 1))
    with pytest.raises(ValueError):
        RuleContext("")


def test_default_registry_wiring():
    from app.db.models.claim import Claim

    registry = build_default_registry()

    assert [r.name for r in registry.rules_for(Claim, HookPhase.BEFORE_INSERT)] == ["claim_classifier"]
    assert [r.name for r in registry.rules_for(Policy, HookPhase.AFTER_INSERT)] == [
        "commission_accrual",
        "audit_logger",
    ]
    assert [r.name for r in registry.rules_for(Policy, HookPhase.BEFORE_UPDATE)] == ["policy_expirer"]
    assert [r.name for r in registry.rules_for(Policy, HookPhase.BEFORE_DELETE)] == ["audit_logger"]


def test_registry_rejects_duplicate_rule_names():
    class Noop(Rule):
        name = "noop"

    registry = RuleRegistry().register(Policy, Noop())
    with pytest.raises(ValueError):
        registry.register(Policy, Noop())


async def test_failing_rule_aborts_the_mutation(session, ctx, policy_terms):
    class Boom(Rule):
        name = "boom"

        async def after_insert(self, session, entity, ctx):
            raise RuntimeError("boom")

    registry = build_default_registry().register(Policy, Boom())

    with pytest.raises(RuntimeError):
        await create_policy(session, ctx, rules=registry, **policy_terms)
