"""
RenewalSelector — auto-renews policies that have run their term clean.

A policy is renewed on ``today`` when

    end_date <= today
    AND no claim on it is anything other than Approved
    AND total payments >= premium_amount
    AND no successor with renewed_from_id = policy.id exists yet

Policies without claims pass the claim check.  Each item re-checks the
predicate in its own transaction, so a policy that picked up an open
claim after selection is skipped.  The successor goes
through create_policy, so commission and audit fire for it.  The source
row is never touched.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.batch.job import BatchJob
from app.core.constants import ClaimStatus, PolicyMarker
from app.core.logging import get_logger
from app.db.models.claim import Claim
from app.db.models.policy import Policy
from app.repositories.base import require
from app.repositories.policies import create_policy, payments_total
from app.rules.context import RuleContext

logger = get_logger(__name__)


def one_year_after(day: date) -> date:
    """Same calendar day next year; Feb 29 maps to Feb 28."""
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        return day.replace(year=day.year + 1, day=28)


def renewal_candidates(today: date):
    """SELECT policies.id eligible for renewal on ``today``."""
    total_paid = payments_total(Policy.id).scalar_subquery()
    open_claim = exists().where(
        Claim.policy_id == Policy.id,
        Claim.status != ClaimStatus.APPROVED.value,
    )
    successor = aliased(Policy)
    already_renewed = exists().where(successor.renewed_from_id == Policy.id)

    return (
        select(Policy.id)
        .where(
            Policy.end_date <= today,
            ~open_claim,
            total_paid >= Policy.premium_amount,
            ~already_renewed,
        )
        .order_by(Policy.id)
    )


class RenewalSelector(BatchJob):
    name = "renewal"
    description = "Create successor policies for fully paid, claim-clean policies"

    async def select(self, session: AsyncSession, ctx: RuleContext) -> list[int]:
        result = await session.execute(renewal_candidates(ctx.today))
        return list(result.scalars().all())

    async def process(self, session: AsyncSession, item_id: int, ctx: RuleContext) -> int | None:
        source = await require(session, Policy, item_id)
        # Claims or payments may have changed since the selection snapshot
        still_eligible = await session.scalar(renewal_candidates(ctx.today).where(Policy.id == item_id))
        if still_eligible is None:
            logger.info("Policy no longer eligible for renewal, skipped", policy_id=item_id)
            return None

        successor = await create_policy(
            session,
            ctx,
            policy_type=source.policy_type,
            coverage_amount=source.coverage_amount,
            premium_amount=source.premium_amount,
            start_date=ctx.today,
            end_date=one_year_after(ctx.today),
            customer_id=source.customer_id,
            agent_id=source.agent_id,
            approval_marker=PolicyMarker.AUTO_RENEWED.value,
            renewed_from_id=source.id,
        )
        return successor.id
