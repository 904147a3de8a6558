"""
BatchJob — abstract base class for scheduled set-based jobs.

A job splits its work in two:

    select(session, ctx)           one statement, returns candidate ids
    process(session, item_id, ctx) one candidate, in its own transaction

The runner owns sessions, transactions, retries, stop checks and the
run summary.  Jobs only implement the business logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession

from app.rules.context import RuleContext


class BatchJob(ABC):
    """
    Base class for every batch job.

    Subclasses MUST implement:
        - name (str)                  — registry key, e.g. "renewal"
        - description (str)           — human-readable label for logs
        - select(session, ctx)        — ids to process, evaluated once
        - process(session, id, ctx)   — handle one id, return created row id
    """

    name: str = "unnamed_job"
    description: str = "No description"

    @abstractmethod
    async def select(self, session: AsyncSession, ctx: RuleContext) -> list[int]:
        """Return the candidate ids for ``ctx.today`` in a stable order."""
        ...

    @abstractmethod
    async def process(self, session: AsyncSession, item_id: int, ctx: RuleContext) -> int | None:
        """
        Handle one candidate.  Flush, never commit.

        Raise RuleError (or anything else) to fail this item only.
        """
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
