"""
RuleRegistry — maps entity types to the ordered rules that guard them.

The default registry wires:

    Claim   before_insert  → ClaimClassifier
    Policy  before_update  → PolicyExpirer
    Policy  after_insert   → CommissionAccrual, AuditLogger
    Policy  after_update   → AuditLogger
    Policy  before_delete  → AuditLogger

Rules run in registration order.  The registry does not catch rule
failures: it logs which rule failed and re-raises so the enclosing
transaction rolls back.
"""

from __future__ import annotations

from collections import defaultdict
from functools import lru_cache
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.rules.base import HookPhase, Rule
from app.rules.context import RuleContext

logger = get_logger(__name__)


class RuleRegistry:
    """Ordered rule lists per entity class."""

    def __init__(self) -> None:
        self._rules: dict[type, list[Rule]] = defaultdict(list)

    def register(self, entity_type: type, rule: Rule) -> "RuleRegistry":
        if any(r.name == rule.name for r in self._rules[entity_type]):
            raise ValueError(f"Rule '{rule.name}' already registered for {entity_type.__name__}")
        self._rules[entity_type].append(rule)
        return self

    def rules_for(self, entity_type: type, phase: HookPhase | None = None) -> list[Rule]:
        rules = list(self._rules.get(entity_type, []))
        if phase is not None:
            rules = [r for r in rules if r.handles(phase)]
        return rules

    async def fire(
        self,
        phase: HookPhase,
        session: AsyncSession,
        entity: Any,
        ctx: RuleContext,
        **kwargs: Any,
    ) -> None:
        """Run every rule registered for ``type(entity)`` at ``phase``."""
        for rule in self.rules_for(type(entity), phase):
            log = logger.bind(
                rule=rule.name,
                phase=phase.value,
                entity=type(entity).__name__,
                entity_id=getattr(entity, "id", None),
                actor=ctx.actor,
            )
            try:
                await getattr(rule, phase.value)(session, entity, ctx, **kwargs)
            except Exception as exc:
                log.warning("Rule failed, aborting mutation", error=str(exc))
                raise
            log.debug("Rule applied")

    # ─── Convenience wrappers used by repositories ─────

    async def before_insert(self, session: AsyncSession, entity: Any, ctx: RuleContext) -> None:
        await self.fire(HookPhase.BEFORE_INSERT, session, entity, ctx)

    async def after_insert(self, session: AsyncSession, entity: Any, ctx: RuleContext) -> None:
        await self.fire(HookPhase.AFTER_INSERT, session, entity, ctx)

    async def before_update(
        self, session: AsyncSession, entity: Any, ctx: RuleContext, changes: dict[str, Any]
    ) -> None:
        await self.fire(HookPhase.BEFORE_UPDATE, session, entity, ctx, changes=changes)

    async def after_update(
        self, session: AsyncSession, entity: Any, ctx: RuleContext, changes: dict[str, Any]
    ) -> None:
        await self.fire(HookPhase.AFTER_UPDATE, session, entity, ctx, changes=changes)

    async def before_delete(self, session: AsyncSession, entity: Any, ctx: RuleContext) -> None:
        await self.fire(HookPhase.BEFORE_DELETE, session, entity, ctx)


def build_default_registry() -> RuleRegistry:
    """Registry with the production rule set."""
    from app.db.models.claim import Claim
    from app.db.models.policy import Policy
    from app.rules.audit_logger import AuditLogger
    from app.rules.claim_classifier import ClaimClassifier
    from app.rules.commission_accrual import CommissionAccrual
    from app.rules.policy_expirer import PolicyExpirer

    registry = RuleRegistry()
    registry.register(Claim, ClaimClassifier())
    registry.register(Policy, PolicyExpirer())
    registry.register(Policy, CommissionAccrual())
    registry.register(Policy, AuditLogger())
    return registry


@lru_cache
def get_rule_registry() -> RuleRegistry:
    """Process-wide default registry."""
    return build_default_registry()
