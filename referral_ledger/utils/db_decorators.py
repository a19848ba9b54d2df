"""
Transaction helpers with automatic rollback and conflict retry.

Every ledger mutation runs as one unit of work in a fresh session. Lock
conflicts, deadlocks and unique-constraint races roll the unit back and run
it again, up to a bounded number of attempts.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from referral_ledger.utils.exceptions import ConcurrencyConflictError


T = TypeVar("T")

# PostgreSQL serialization_failure / deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}

# PostgreSQL unique_violation (a concurrent insert won the race)
UNIQUE_VIOLATION_SQLSTATE = "23505"

# Base delay between attempts (seconds), multiplied by attempt number
RETRY_BACKOFF_SECONDS = 0.05


def is_retryable_error(exc: BaseException) -> bool:
    """
    Check if a database error is a transient concurrency conflict.

    Args:
        exc: Exception raised inside the unit of work

    Returns:
        True if the unit of work should be retried
    """
    if isinstance(exc, OperationalError):
        return True
    if not isinstance(exc, DBAPIError):
        return False

    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if isinstance(exc, IntegrityError):
        return code == UNIQUE_VIOLATION_SQLSTATE or "unique" in str(orig).lower()
    return code in RETRYABLE_SQLSTATES


async def run_in_transaction(
    session_maker: async_sessionmaker[AsyncSession],
    operation: Callable[[AsyncSession], Awaitable[T]],
    *,
    name: str,
    attempts: int = 3,
) -> T:
    """
    Run operation in its own transaction, retrying on conflicts.

    The operation receives an open session; it must not commit itself.
    On success the transaction is committed, on any error it is rolled back.
    Cancellation of the calling task also rolls back.

    Args:
        session_maker: Factory for new sessions
        operation: Coroutine function doing the work
        name: Operation name used in logs and errors
        attempts: Maximum number of attempts (>= 1)

    Returns:
        Result of operation

    Raises:
        ConcurrencyConflictError: If every attempt hit a retryable conflict
        Exception: Any non-retryable error from operation, unchanged
    """
    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        async with session_maker() as session:
            try:
                async with session.begin():
                    return await operation(session)
            except Exception as e:
                if not is_retryable_error(e):
                    logger.error(
                        f"Transaction failed in {name}",
                        extra={
                            "operation": name,
                            "attempt": attempt,
                            "error": str(e),
                        },
                    )
                    raise
                last_error = e
                logger.warning(
                    f"Concurrent update conflict in {name}, retrying",
                    extra={
                        "operation": name,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "error_type": type(e).__name__,
                    },
                )
        await asyncio.sleep(RETRY_BACKOFF_SECONDS * attempt)

    logger.error(
        f"Giving up on {name} after {attempts} attempts",
        extra={"operation": name, "error": str(last_error)},
    )
    raise ConcurrencyConflictError(name, attempts) from last_error
