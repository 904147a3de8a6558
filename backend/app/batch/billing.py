"""
RecurringBiller — records the daily Auto-Debit premium payment.

One payment per (policy, day): the selection skips policies that
already have an Auto-Debit payment dated ``today``, and the partial
unique index on payments rejects a concurrent double charge.

With ``active_only`` (the default, BILLING_ACTIVE_ONLY) only policies
whose term covers ``today`` and that are not marked Expired are billed.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.batch.job import BatchJob
from app.core.config import settings
from app.core.constants import PaymentMethod, PolicyMarker
from app.db.models.payment import Payment
from app.db.models.policy import Policy
from app.repositories.base import require
from app.repositories.payments import create_payment
from app.rules.context import RuleContext


def billing_candidates(today: date, *, active_only: bool):
    """SELECT policies.id to auto-debit on ``today``."""
    billed_today = exists().where(
        Payment.policy_id == Policy.id,
        Payment.payment_method == PaymentMethod.AUTO_DEBIT.value,
        Payment.payment_date == today,
    )
    stmt = select(Policy.id).where(~billed_today)
    if active_only:
        stmt = stmt.where(
            Policy.start_date <= today,
            Policy.end_date >= today,
            or_(
                Policy.approval_marker.is_(None),
                Policy.approval_marker != PolicyMarker.EXPIRED.value,
            ),
        )
    return stmt.order_by(Policy.id)


class RecurringBiller(BatchJob):
    name = "billing"
    description = "Record today's Auto-Debit premium payment per policy"

    def __init__(self, active_only: bool | None = None) -> None:
        self.active_only = settings.BILLING_ACTIVE_ONLY if active_only is None else active_only

    async def select(self, session: AsyncSession, ctx: RuleContext) -> list[int]:
        result = await session.execute(billing_candidates(ctx.today, active_only=self.active_only))
        return list(result.scalars().all())

    async def process(self, session: AsyncSession, item_id: int, ctx: RuleContext) -> int | None:
        policy = await require(session, Policy, item_id)
        payment = await create_payment(
            session,
            ctx,
            policy_id=policy.id,
            customer_id=policy.customer_id,
            amount=policy.premium_amount,
            payment_method=PaymentMethod.AUTO_DEBIT.value,
            payment_date=ctx.today,
        )
        return payment.id
