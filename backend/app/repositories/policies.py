"""
Policy repository — every policy mutation passes through the rule hooks.

    create_policy:  before_insert → INSERT (flush) → after_insert
    update_policy:  apply fields → before_update → flush → after_update
    delete_policy:  before_delete → DELETE (flush)

Nothing here commits.  The caller's transaction owns the commission
update and the audit row, so they land or vanish together with the
policy row.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import AuditOperation
from app.db.models.agent import Agent
from app.db.models.audit_policy import AuditPolicyRecord
from app.db.models.customer import Customer
from app.db.models.payment import Payment
from app.db.models.policy import Policy
from app.db.transaction import translate_db_errors
from app.repositories.base import require
from app.rules.context import RuleContext
from app.rules.errors import InvariantViolation
from app.rules.registry import RuleRegistry, get_rule_registry

UPDATABLE_FIELDS = {
    "policy_type",
    "coverage_amount",
    "premium_amount",
    "start_date",
    "end_date",
    "approval_marker",
}

# Columns an update may set to NULL
NULLABLE_FIELDS = {"approval_marker"}


def validate_terms(
    start_date: date,
    end_date: date,
    premium_amount: Decimal,
    coverage_amount: Decimal,
    *,
    policy_id: int | None = None,
) -> None:
    """Raise InvariantViolation for an impossible date range or amount."""
    if end_date < start_date:
        raise InvariantViolation(
            f"end_date {end_date} is before start_date {start_date}",
            entity="Policy",
            entity_id=policy_id,
        )
    if Decimal(premium_amount) <= 0:
        raise InvariantViolation("premium_amount must be positive", entity="Policy", entity_id=policy_id)
    if Decimal(coverage_amount) < 0:
        raise InvariantViolation("coverage_amount cannot be negative", entity="Policy", entity_id=policy_id)


async def create_policy(
    db: AsyncSession,
    ctx: RuleContext,
    *,
    policy_type: str,
    coverage_amount: Decimal,
    premium_amount: Decimal,
    start_date: date,
    end_date: date,
    customer_id: int,
    agent_id: int | None = None,
    approval_marker: str | None = None,
    renewed_from_id: int | None = None,
    rules: RuleRegistry | None = None,
) -> Policy:
    """Insert a policy and run the insert hooks (commission, audit)."""
    rules = rules or get_rule_registry()
    validate_terms(start_date, end_date, premium_amount, coverage_amount)

    await require(db, Customer, customer_id)
    if agent_id is not None:
        await require(db, Agent, agent_id)

    policy = Policy(
        policy_type=policy_type,
        coverage_amount=coverage_amount,
        premium_amount=premium_amount,
        start_date=start_date,
        end_date=end_date,
        customer_id=customer_id,
        agent_id=agent_id,
        approval_marker=approval_marker,
        renewed_from_id=renewed_from_id,
    )

    await rules.before_insert(db, policy, ctx)
    db.add(policy)
    with translate_db_errors(entity="Policy"):
        await db.flush()
    await rules.after_insert(db, policy, ctx)
    return policy


async def get_policy(db: AsyncSession, policy_id: int) -> Policy:
    return await require(db, Policy, policy_id)


async def list_policies(
    db: AsyncSession,
    *,
    customer_id: int | None = None,
    agent_id: int | None = None,
    approval_marker: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> list[Policy]:
    stmt = select(Policy).order_by(Policy.id)
    if customer_id is not None:
        stmt = stmt.where(Policy.customer_id == customer_id)
    if agent_id is not None:
        stmt = stmt.where(Policy.agent_id == agent_id)
    if approval_marker is not None:
        stmt = stmt.where(Policy.approval_marker == approval_marker)
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_policy(
    db: AsyncSession,
    ctx: RuleContext,
    policy_id: int,
    *,
    rules: RuleRegistry | None = None,
    **fields: Any,
) -> Policy:
    """
    Apply ``fields`` and run the update hooks.

    ``None`` means "leave unchanged" except for NULLABLE_FIELDS, where it
    clears the column.

    The hooks fire on every call, even when no column value changes,
    the same way a row trigger fires on a no-op UPDATE.
    """
    rules = rules or get_rule_registry()
    policy = await require(db, Policy, policy_id)

    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise InvariantViolation(
            f"Fields not updatable: {', '.join(sorted(unknown))}",
            entity="Policy",
            entity_id=policy_id,
        )

    changes: dict[str, Any] = {
        key: value
        for key, value in fields.items()
        if (value is not None or key in NULLABLE_FIELDS) and getattr(policy, key) != value
    }
    validate_terms(
        changes.get("start_date", policy.start_date),
        changes.get("end_date", policy.end_date),
        changes.get("premium_amount", policy.premium_amount),
        changes.get("coverage_amount", policy.coverage_amount),
        policy_id=policy_id,
    )

    for key, value in changes.items():
        setattr(policy, key, value)

    await rules.before_update(db, policy, ctx, changes)
    with translate_db_errors(entity="Policy", entity_id=policy_id):
        await db.flush()
    await rules.after_update(db, policy, ctx, changes)
    return policy


async def delete_policy(
    db: AsyncSession,
    ctx: RuleContext,
    policy_id: int,
    *,
    rules: RuleRegistry | None = None,
) -> None:
    """Delete a policy; its claims and payments cascade at the DB level."""
    rules = rules or get_rule_registry()
    policy = await require(db, Policy, policy_id)
    await rules.before_delete(db, policy, ctx)
    await db.delete(policy)
    with translate_db_errors(entity="Policy", entity_id=policy_id):
        await db.flush()


def payments_total(policy_id: Any) -> Select:
    """SELECT coalesce(sum(amount), 0) of the payments on ``policy_id`` (a value or a column)."""
    return select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.policy_id == policy_id)


async def list_audit_records(
    db: AsyncSession,
    *,
    policy_id: int | None = None,
    operation: AuditOperation | str | None = None,
    offset: int = 0,
    limit: int = 100,
) -> list[AuditPolicyRecord]:
    """Audit trail, oldest first."""
    stmt = select(AuditPolicyRecord).order_by(AuditPolicyRecord.id)
    if policy_id is not None:
        stmt = stmt.where(AuditPolicyRecord.policy_id == policy_id)
    if operation is not None:
        stmt = stmt.where(AuditPolicyRecord.operation == str(operation))
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
