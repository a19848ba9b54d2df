"""
Tests for the transaction retry helper.

Covers:
- Commit of a successful unit of work
- Retry on lock conflicts and unique-constraint races
- Giving up with ConcurrencyConflictError
- Non-retryable errors propagate unchanged
"""

from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from referral_ledger.utils import db_decorators
from referral_ledger.utils.db_decorators import is_retryable_error, run_in_transaction
from referral_ledger.utils.exceptions import ConcurrencyConflictError, NotFoundError


class FakeSession:
    """Session stand-in tracking commits and rollbacks."""

    def __init__(self, log: list[str]) -> None:
        self.log = log

    @asynccontextmanager
    async def begin(self):
        try:
            yield self
        except Exception:
            self.log.append("rollback")
            raise
        self.log.append("commit")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.log.append("close")
        return False


@pytest.fixture
def tx_log():
    return []


@pytest.fixture
def session_factory(tx_log):
    return lambda: FakeSession(tx_log)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(db_decorators, "RETRY_BACKOFF_SECONDS", 0)


def _operational_error() -> OperationalError:
    return OperationalError("UPDATE ...", {}, Exception("database is locked"))


class TestRunInTransaction:
    """Test unit-of-work execution."""

    @pytest.mark.asyncio
    async def test_success_commits(self, session_factory, tx_log):
        """Test result is returned and transaction committed."""

        async def operation(session):
            return 42

        result = await run_in_transaction(session_factory, operation, name="op")

        assert result == 42
        assert tx_log == ["commit", "close"]

    @pytest.mark.asyncio
    async def test_retries_conflict_then_succeeds(self, session_factory, tx_log):
        """Test a lock conflict rolls back and runs the operation again."""
        calls = {"n": 0}

        async def operation(session):
            calls["n"] += 1
            if calls["n"] == 1:
                raise _operational_error()
            return "ok"

        result = await run_in_transaction(
            session_factory, operation, name="op", attempts=3
        )

        assert result == "ok"
        assert calls["n"] == 2
        assert tx_log == ["rollback", "close", "commit", "close"]

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, session_factory):
        """Test persistent conflicts raise ConcurrencyConflictError."""

        async def operation(session):
            raise IntegrityError(
                "INSERT ...", {}, Exception("UNIQUE constraint failed: bonuses.order_id")
            )

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await run_in_transaction(
                session_factory, operation, name="apply", attempts=2
            )

        assert exc_info.value.attempts == 2
        assert exc_info.value.operation == "apply"
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    @pytest.mark.asyncio
    async def test_business_error_not_retried(self, session_factory, tx_log):
        """Test non-database errors propagate after one rollback."""
        calls = {"n": 0}

        async def operation(session):
            calls["n"] += 1
            raise NotFoundError("Bonus", 1)

        with pytest.raises(NotFoundError):
            await run_in_transaction(session_factory, operation, name="op")

        assert calls["n"] == 1
        assert tx_log == ["rollback", "close"]


class TestIsRetryableError:
    """Test classification of database errors."""

    def test_operational_error(self):
        """Test lock timeouts are retryable."""
        assert is_retryable_error(_operational_error()) is True

    def test_check_violation_not_retryable(self):
        """Test check-constraint violations are real errors."""
        exc = IntegrityError(
            "UPDATE ...", {}, Exception("CHECK constraint failed: non_negative")
        )

        assert is_retryable_error(exc) is False

    def test_plain_exception(self):
        """Test unrelated errors are not retryable."""
        assert is_retryable_error(ValueError("x")) is False
