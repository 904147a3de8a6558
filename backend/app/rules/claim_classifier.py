"""
ClaimClassifier — assigns a new claim's status from its amount.

Below the auto-approve limit (exclusive) the claim is Approved on the
spot; anything at or above it waits for an adjuster as Pending.  The
rule is total: zero and negative amounts are below the limit.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.constants import ClaimStatus
from app.core.logging import get_logger
from app.db.models.claim import Claim
from app.rules.base import Rule
from app.rules.context import RuleContext

logger = get_logger(__name__)


def classify_claim(amount: Decimal | int | float, limit: Decimal | None = None) -> ClaimStatus:
    """Approved iff ``amount < limit``."""
    limit = settings.CLAIM_AUTO_APPROVE_LIMIT if limit is None else limit
    return ClaimStatus.APPROVED if Decimal(str(amount)) < limit else ClaimStatus.PENDING


class ClaimClassifier(Rule):
    """Set Claim.status before the row is inserted."""

    name = "claim_classifier"
    description = "Auto-approve small claims, queue the rest as Pending"

    def __init__(self, limit: Decimal | None = None) -> None:
        self.limit = limit

    async def before_insert(self, session: AsyncSession, claim: Claim, ctx: RuleContext) -> None:
        claim.status = classify_claim(claim.claim_amount, self.limit).value
        logger.info(
            "Claim classified",
            policy_id=claim.policy_id,
            claim_amount=str(claim.claim_amount),
            status=claim.status,
        )
