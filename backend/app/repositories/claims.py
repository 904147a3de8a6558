"""
Claim repository.

New claims are classified by the before_insert hook.  The duplicate
incident guard is the (policy_id, incident_description) unique
constraint; the store's rejection surfaces as ConstraintViolation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import ClaimStatus
from app.core.logging import get_logger
from app.db.models.claim import Claim
from app.db.models.policy import Policy
from app.db.transaction import translate_db_errors
from app.repositories.base import require
from app.rules.context import RuleContext
from app.rules.errors import InvariantViolation
from app.rules.registry import RuleRegistry, get_rule_registry

logger = get_logger(__name__)


async def create_claim(
    db: AsyncSession,
    ctx: RuleContext,
    *,
    policy_id: int,
    claim_amount: Decimal,
    incident_description: str,
    claim_date: date | None = None,
    rules: RuleRegistry | None = None,
) -> Claim:
    """File a claim against a policy; status comes from ClaimClassifier."""
    rules = rules or get_rule_registry()
    incident = incident_description.strip()
    if not incident:
        raise InvariantViolation("incident_description cannot be blank", entity="Claim")
    await require(db, Policy, policy_id)

    claim = Claim(
        policy_id=policy_id,
        claim_amount=claim_amount,
        claim_date=claim_date or ctx.today,
        incident_description=incident,
        status=ClaimStatus.PENDING.value,
    )
    await rules.before_insert(db, claim, ctx)
    db.add(claim)
    with translate_db_errors(
        entity="Claim",
        message=f"A claim for this incident already exists on policy {policy_id}",
    ):
        await db.flush()
    await rules.after_insert(db, claim, ctx)
    return claim


async def get_claim(db: AsyncSession, claim_id: int) -> Claim:
    return await require(db, Claim, claim_id)


async def list_claims(
    db: AsyncSession,
    *,
    policy_id: int | None = None,
    status: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> list[Claim]:
    stmt = select(Claim).order_by(Claim.id)
    if policy_id is not None:
        stmt = stmt.where(Claim.policy_id == policy_id)
    if status is not None:
        stmt = stmt.where(Claim.status == status)
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def set_claim_status(
    db: AsyncSession,
    ctx: RuleContext,
    claim_id: int,
    status: ClaimStatus,
) -> Claim:
    """Manual adjudication: move a Pending claim to Approved or Rejected."""
    claim = await require(db, Claim, claim_id)
    if status == ClaimStatus.PENDING:
        raise InvariantViolation("A claim cannot be moved back to Pending", entity="Claim", entity_id=claim_id)
    if claim.status == status:
        return claim
    if claim.status != ClaimStatus.PENDING:
        raise InvariantViolation(
            f"Claim {claim_id} is already {claim.status}",
            entity="Claim",
            entity_id=claim_id,
        )

    claim.status = status.value
    await db.flush()
    logger.info("Claim adjudicated", claim_id=claim_id, status=claim.status, actor=ctx.actor)
    return claim
