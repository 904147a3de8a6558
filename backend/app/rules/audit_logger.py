"""
AuditLogger — appends one AuditPolicyRecord per policy mutation.

The record is added to the same session as the mutation, so it commits
or rolls back with it.  Deletes are recorded before the row goes away
(the audit row keeps the id; there is no FK to enforce).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import AuditOperation
from app.core.logging import get_logger
from app.db.models.audit_policy import AuditPolicyRecord
from app.db.models.policy import Policy
from app.rules.base import Rule
from app.rules.context import RuleContext

logger = get_logger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class AuditLogger(Rule):
    """Record INSERT / UPDATE / DELETE on policies with actor and timestamp."""

    name = "audit_logger"
    description = "Append-only audit trail of policy mutations"

    async def after_insert(self, session: AsyncSession, policy: Policy, ctx: RuleContext) -> None:
        await self._record(session, AuditOperation.INSERT, policy, ctx)

    async def after_update(
        self,
        session: AsyncSession,
        policy: Policy,
        ctx: RuleContext,
        changes: dict[str, Any],
    ) -> None:
        details = {"changes": {k: _jsonable(v) for k, v in changes.items()}}
        await self._record(session, AuditOperation.UPDATE, policy, ctx, details)

    async def before_delete(self, session: AsyncSession, policy: Policy, ctx: RuleContext) -> None:
        await self._record(session, AuditOperation.DELETE, policy, ctx)

    async def _record(
        self,
        session: AsyncSession,
        operation: AuditOperation,
        policy: Policy,
        ctx: RuleContext,
        details: dict[str, Any] | None = None,
    ) -> AuditPolicyRecord:
        record = AuditPolicyRecord(
            operation=operation.value,
            policy_id=policy.id,
            actor=ctx.actor,
            changed_at=ctx.now,
            details=details,
        )
        session.add(record)
        await session.flush()
        logger.info(
            "Policy audited",
            operation=operation.value,
            policy_id=policy.id,
            actor=ctx.actor,
        )
        return record
