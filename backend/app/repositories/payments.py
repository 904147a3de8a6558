"""Payment repository."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.customer import Customer
from app.db.models.payment import Payment
from app.db.models.policy import Policy
from app.db.transaction import translate_db_errors
from app.repositories.base import require
from app.rules.context import RuleContext
from app.rules.errors import InvariantViolation


async def create_payment(
    db: AsyncSession,
    ctx: RuleContext,
    *,
    policy_id: int,
    amount: Decimal,
    payment_method: str,
    payment_date: date | None = None,
    customer_id: int | None = None,
) -> Payment:
    """Record a payment.  The payer defaults to the policy's customer."""
    if Decimal(amount) <= 0:
        raise InvariantViolation("Payment amount must be positive", entity="Payment")

    policy = await require(db, Policy, policy_id)
    if customer_id is None:
        customer_id = policy.customer_id
    else:
        await require(db, Customer, customer_id)

    payment = Payment(
        policy_id=policy_id,
        customer_id=customer_id,
        payment_date=payment_date or ctx.today,
        amount=amount,
        payment_method=payment_method,
    )
    db.add(payment)
    with translate_db_errors(
        entity="Payment",
        message=f"Policy {policy_id} already has a {payment_method} payment on this date",
    ):
        await db.flush()
    return payment


async def get_payment(db: AsyncSession, payment_id: int) -> Payment:
    return await require(db, Payment, payment_id)


async def list_payments(
    db: AsyncSession,
    *,
    policy_id: int | None = None,
    customer_id: int | None = None,
    offset: int = 0,
    limit: int = 50,
) -> list[Payment]:
    stmt = select(Payment).order_by(Payment.id)
    if policy_id is not None:
        stmt = stmt.where(Payment.policy_id == policy_id)
    if customer_id is not None:
        stmt = stmt.where(Payment.customer_id == customer_id)
    stmt = stmt.offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
