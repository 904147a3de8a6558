"""
CommissionAccrual — credits the writing agent when a policy is created.

The increment is one atomic ``UPDATE agents SET commission = commission + x``
so concurrent policy creations for the same agent serialize on the row
lock instead of losing updates through a read-modify-write.  A missing
agent raises ReferenceNotFound, which rolls the policy insert back too.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.db.models.agent import Agent
from app.db.models.policy import Policy
from app.db.transaction import translate_db_errors
from app.rules.base import Rule
from app.rules.context import RuleContext
from app.rules.errors import ReferenceNotFound

logger = get_logger(__name__)

CENT = Decimal("0.01")


def commission_for(premium: Decimal, rate: Decimal | None = None) -> Decimal:
    """premium * rate, rounded half-up to cents."""
    rate = settings.COMMISSION_RATE if rate is None else rate
    return (Decimal(premium) * rate).quantize(CENT, rounding=ROUND_HALF_UP)


class CommissionAccrual(Rule):
    """Add premium * rate to the agent's running commission, once per policy insert."""

    name = "commission_accrual"
    description = "Accrue agent commission on new policies"

    def __init__(self, rate: Decimal | None = None) -> None:
        self.rate = rate

    async def after_insert(self, session: AsyncSession, policy: Policy, ctx: RuleContext) -> None:
        if policy.agent_id is None:
            logger.debug("Policy has no agent, no commission", policy_id=policy.id)
            return

        amount = commission_for(policy.premium_amount, self.rate)
        stmt = (
            update(Agent)
            .where(Agent.id == policy.agent_id)
            .values(commission=Agent.commission + amount)
        )
        with translate_db_errors(entity="Agent", entity_id=policy.agent_id):
            result = await session.execute(stmt)

        if result.rowcount == 0:
            raise ReferenceNotFound(
                f"Agent {policy.agent_id} does not exist",
                entity="Agent",
                entity_id=policy.agent_id,
                details={"policy_id": policy.id},
            )

        logger.info(
            "Commission accrued",
            agent_id=policy.agent_id,
            policy_id=policy.id,
            amount=str(amount),
        )
