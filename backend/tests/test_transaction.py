"""DB error translation and the retried unit of work."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.db.transaction import run_in_transaction, translate_db_error, translate_db_errors
from app.rules.errors import (
    ConstraintViolation,
    ReferenceNotFound,
    TransactionConflict,
)


class _DriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def _integrity(message: str, sqlstate: str | None = None) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, _DriverError(message, sqlstate))


@pytest.mark.parametrize(
    "exc, expected",
    [
        (_integrity("duplicate key value", "23505"), ConstraintViolation),
        (_integrity("UNIQUE constraint failed: customers.email"), ConstraintViolation),
        (_integrity("new row violates check constraint", "23514"), ConstraintViolation),
        (_integrity("insert violates foreign key constraint", "23503"), ReferenceNotFound),
        (_integrity("FOREIGN KEY constraint failed"), ReferenceNotFound),
        (OperationalError("UPDATE ...", {}, _DriverError("could not serialize access", "40001")), TransactionConflict),
        (OperationalError("UPDATE ...", {}, _DriverError("deadlock detected", "40P01")), TransactionConflict),
        (OperationalError("UPDATE ...", {}, _DriverError("database is locked")), TransactionConflict),
    ],
)
def test_translate_db_error(exc, expected):
    translated = translate_db_error(exc, entity="Policy", entity_id=7)

    assert isinstance(translated, expected)
    assert translated.entity == "Policy"
    assert translated.entity_id == 7


def test_unknown_operational_error_is_not_translated():
    exc = OperationalError("SELECT 1", {}, _DriverError("server closed the connection"))

    assert translate_db_error(exc) is None
    with pytest.raises(OperationalError):
        with translate_db_errors():
            raise exc


def test_context_manager_uses_custom_message():
    with pytest.raises(ConstraintViolation) as exc_info:
        with translate_db_errors(entity="Claim", message="Duplicate incident"):
            raise _integrity("UNIQUE constraint failed")

    assert str(exc_info.value) == "Duplicate incident"
    assert isinstance(exc_info.value.__cause__, IntegrityError)


async def test_run_in_transaction_retries_conflicts(session_factory):
    calls = []

    async def operation(session):
        calls.append(1)
        if len(calls) < 3:
            raise TransactionConflict("busy")
        return "done"

    result = await run_in_transaction(session_factory, operation, max_attempts=3, base_delay=0)

    assert result == "done"
    assert len(calls) == 3


async def test_run_in_transaction_gives_up_after_max_attempts(session_factory):
    async def operation(session):
        raise TransactionConflict("busy")

    with pytest.raises(TransactionConflict) as exc_info:
        await run_in_transaction(session_factory, operation, max_attempts=2, base_delay=0)

    assert exc_info.value.attempts == 2


async def test_run_in_transaction_does_not_retry_other_errors(session_factory):
    calls = []

    async def operation(session):
        calls.append(1)
        raise ConstraintViolation("nope")

    with pytest.raises(ConstraintViolation):
        await run_in_transaction(session_factory, operation, max_attempts=5, base_delay=0)

    assert len(calls) == 1
