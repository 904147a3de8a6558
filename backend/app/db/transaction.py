"""
Transaction helpers — DB error translation and retried units of work.

``translate_db_errors()`` turns driver / SQLAlchemy failures into the
rule-engine taxonomy:

    unique / check violation       → ConstraintViolation
    foreign-key violation          → ReferenceNotFound
    serialization failure/deadlock → TransactionConflict

``run_in_transaction()`` runs a coroutine in its own session and
transaction, retrying the whole unit of work on TransactionConflict.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.logging import get_logger
from app.rules.errors import (
    ConstraintViolation,
    ReferenceNotFound,
    RuleError,
    TransactionConflict,
)

logger = get_logger(__name__)

T = TypeVar("T")

# PostgreSQL SQLSTATE codes
_FK_VIOLATION = "23503"
_CONFLICT_STATES = {"40001", "40P01"}  # serialization_failure, deadlock_detected

_CONFLICT_MARKERS = ("deadlock", "could not serialize", "database is locked")


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_db_error(
    exc: DBAPIError,
    *,
    entity: str | None = None,
    entity_id: int | str | None = None,
    message: str | None = None,
) -> RuleError | None:
    """Map a DBAPIError onto a RuleError. Returns None if it is not one we know."""
    state = _sqlstate(exc)
    text = str(exc.orig).lower()
    details = {"db_error": str(exc.orig)}

    if state in _CONFLICT_STATES or any(m in text for m in _CONFLICT_MARKERS):
        return TransactionConflict(
            "Concurrent update conflict", entity=entity, entity_id=entity_id, details=details
        )

    if isinstance(exc, IntegrityError):
        if state == _FK_VIOLATION or "foreign key" in text:
            return ReferenceNotFound(
                "Referenced row does not exist", entity=entity, entity_id=entity_id, details=details
            )
        return ConstraintViolation(
            message or "Write rejected by a database constraint",
            entity=entity,
            entity_id=entity_id,
            details=details,
        )
    return None


@contextmanager
def translate_db_errors(
    *,
    entity: str | None = None,
    entity_id: int | str | None = None,
    message: str | None = None,
) -> Iterator[None]:
    """Re-raise known DB failures as RuleErrors; everything else passes through."""
    try:
        yield
    except DBAPIError as exc:
        translated = translate_db_error(exc, entity=entity, entity_id=entity_id, message=message)
        if translated is None:
            raise
        raise translated from exc


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    operation: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: int | None = None,
    base_delay: float = 0.05,
) -> T:
    """
    Run ``operation(session)`` inside a fresh session + transaction.

    Commits on success.  On TransactionConflict the transaction is rolled
    back and the whole operation is retried with exponential backoff, up
    to ``max_attempts``.  Any other exception rolls back and propagates.
    """
    max_attempts = max_attempts or settings.TRANSACTION_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        try:
            async with session_factory() as session:
                with translate_db_errors():
                    async with session.begin():
                        return await operation(session)
        except TransactionConflict as exc:
            exc.attempts = attempt
            if attempt >= max_attempts:
                logger.error("Transaction conflict, retries exhausted", attempts=attempt)
                raise
            wait_seconds = base_delay * 2 ** attempt
            logger.warning(
                f"Transaction conflict (attempt {attempt}/{max_attempts}), retrying in {wait_seconds:.2f}s",
                error=str(exc),
            )
            await asyncio.sleep(wait_seconds)

    # Unreachable: the loop either returns or raises
    raise TransactionConflict("Retry loop exited unexpectedly", attempts=max_attempts)
