"""
Domain-specific exception hierarchy for the rule engine.

All rule exceptions inherit from RuleError so callers can catch broadly
or narrowly as needed.  Each exception carries structured context
(entity, id, details) for logging and for the API error body.
"""

from __future__ import annotations


class RuleError(Exception):
    """Base exception for all rule-engine errors."""

    def __init__(
        self,
        message: str,
        *,
        entity: str | None = None,
        entity_id: int | str | None = None,
        details: dict | None = None,
    ) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serialise for API responses and batch summaries."""
        return {
            "error": type(self).__name__,
            "message": str(self),
            "entity": self.entity,
            "entity_id": self.entity_id,
            "details": self.details,
        }


class ConstraintViolation(RuleError):
    """The store rejected a write (unique / check constraint)."""
    pass


class ReferenceNotFound(RuleError):
    """A write references a row that does not exist."""
    pass


class InvariantViolation(RuleError):
    """A value breaks an entity invariant before reaching the store."""
    pass


class TransactionConflict(RuleError):
    """Serialization failure or deadlock; the unit of work may be retried."""

    def __init__(
        self,
        message: str,
        *,
        attempts: int = 0,
        **kwargs,
    ) -> None:
        self.attempts = attempts
        super().__init__(message, **kwargs)
