"""PolicyExpirer — marks a policy Expired on update once its end date has passed."""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import PolicyMarker
from app.core.logging import get_logger
from app.db.models.policy import Policy
from app.rules.base import Rule
from app.rules.context import RuleContext

logger = get_logger(__name__)


def is_expired(end_date: date, today: date) -> bool:
    # A policy ending today is still in force
    return end_date < today


class PolicyExpirer(Rule):
    """Overwrite approval_marker with "Expired" when end_date < today."""

    name = "policy_expirer"
    description = "Expire policies whose end date has passed"

    async def before_update(
        self,
        session: AsyncSession,
        policy: Policy,
        ctx: RuleContext,
        changes: dict[str, Any],
    ) -> None:
        if not is_expired(policy.end_date, ctx.today):
            return

        if policy.approval_marker != PolicyMarker.EXPIRED:
            logger.info(
                "Policy expired",
                policy_id=policy.id,
                end_date=policy.end_date.isoformat(),
                previous_marker=policy.approval_marker,
            )
            changes["approval_marker"] = PolicyMarker.EXPIRED.value
        policy.approval_marker = PolicyMarker.EXPIRED.value
