"""
Rule — abstract base class for every trigger-style business rule.

The persistence layer calls the registry around each mutation; the
registry calls the matching hook on every rule registered for the
entity type.  Rules only implement the hooks they care about.

Hooks run inside the caller's transaction.  Raising aborts the whole
unit of work, so a rule must never swallow its own failure.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.rules.context import RuleContext


class HookPhase(StrEnum):
    """Points in a mutation's lifecycle where rules may run."""

    BEFORE_INSERT = "before_insert"
    AFTER_INSERT = "after_insert"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_DELETE = "before_delete"


class Rule:
    """
    Base class for every rule.

    Subclasses MUST set:
        - name (str)          — unique identifier, e.g. "claim_classifier"
        - description (str)   — human-readable label for logs

    Subclasses override any of the hook coroutines below.  ``after_*``
    hooks see the entity after flush (primary key assigned).  Update
    hooks also receive ``changes``: column name -> new value.
    """

    name: str = "unnamed_rule"
    description: str = "No description"

    async def before_insert(self, session: AsyncSession, entity: Any, ctx: RuleContext) -> None:
        pass

    async def after_insert(self, session: AsyncSession, entity: Any, ctx: RuleContext) -> None:
        pass

    async def before_update(
        self,
        session: AsyncSession,
        entity: Any,
        ctx: RuleContext,
        changes: dict[str, Any],
    ) -> None:
        pass

    async def after_update(
        self,
        session: AsyncSession,
        entity: Any,
        ctx: RuleContext,
        changes: dict[str, Any],
    ) -> None:
        pass

    async def before_delete(self, session: AsyncSession, entity: Any, ctx: RuleContext) -> None:
        pass

    def handles(self, phase: HookPhase) -> bool:
        """True if this rule overrides the hook for ``phase``."""
        return getattr(type(self), phase.value) is not getattr(Rule, phase.value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
