"""
RuleContext — request-scoped clock and actor handed to every rule.

Rules never read "the current user" or "today" from ambient state.
The API builds a context from the authenticated user; batch jobs build
one from the configured system actor.  Tests pin ``now`` to make date
rules deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from app.core.config import settings


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RuleContext:
    """Who is acting, and when."""

    actor: str
    now: datetime = field(default_factory=_utcnow)
    business_timezone: str = field(default_factory=lambda: settings.BUSINESS_TIMEZONE)

    def __post_init__(self) -> None:
        if not self.actor:
            raise ValueError("RuleContext requires an actor identity")
        if self.now.tzinfo is None:
            raise ValueError("RuleContext.now must be timezone-aware")

    @property
    def today(self) -> date:
        """Business date: ``now`` seen from the business time zone."""
        return self.now.astimezone(ZoneInfo(self.business_timezone)).date()

    @classmethod
    def system(cls, actor: str | None = None, now: datetime | None = None) -> "RuleContext":
        """Context for scheduled / batch work."""
        return cls(actor=actor or settings.BATCH_ACTOR, now=now or _utcnow())

    @classmethod
    def for_day(cls, actor: str, day: date) -> "RuleContext":
        """Context pinned to midday UTC of ``day``."""
        return cls(
            actor=actor,
            now=datetime(day.year, day.month, day.day, 12, tzinfo=timezone.utc),
            business_timezone="UTC",
        )
