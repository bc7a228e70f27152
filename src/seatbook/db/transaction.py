"""Transaction utilities for explicit transaction boundaries.

This module provides context managers for managing database transactions
with automatic commit/rollback semantics to prevent partial state updates.
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from seatbook.core.exceptions import ConcurrencyConflictError, PersistenceError
from seatbook.core.retry import RetryConfig, with_retry_sync

T = TypeVar("T")


def _is_lock_timeout(exc: OperationalError) -> bool:
    message = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
    return "database is locked" in message or "could not obtain lock" in message


@contextmanager
def transaction(session: Session) -> Generator[Session]:
    """Context manager for explicit transaction boundaries.

    Commits on successful completion, rolls back on any exception.
    Use this when you need to ensure multiple operations succeed or fail together.
    A lock wait that times out is reported as ConcurrencyConflictError so
    callers can retry the whole unit of work; any other driver-level failure
    becomes PersistenceError.

    Example:
        with transaction(session):
            ledger.reserve(ride_id, 2)
            booking_repo.create(...)
        # Automatic commit if no exception, rollback otherwise

    Args:
        session: SQLAlchemy session to manage

    Yields:
        The same session for use within the context

    Raises:
        Any exception raised within the context (after rollback)
    """
    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        if _is_lock_timeout(e):
            raise ConcurrencyConflictError(
                "Timed out waiting for the database write lock", details={"error": str(e.orig)}
            ) from e
        raise PersistenceError(
            "Database operation failed", details={"error": str(e.orig)}
        ) from e
    except Exception:
        session.rollback()
        raise


@contextmanager
def savepoint(session: Session) -> Generator[Session]:
    """Context manager for nested transaction (savepoint).

    Creates a savepoint within an existing transaction. On exception,
    rolls back only to the savepoint without affecting the outer transaction.

    Args:
        session: SQLAlchemy session to create savepoint on

    Yields:
        The same session for use within the context

    Raises:
        Any exception raised within the context (after savepoint rollback)
    """
    nested = session.begin_nested()
    try:
        yield session
        nested.commit()
    except Exception:
        nested.rollback()
        raise


def run_in_transaction(
    session_factory: Callable[[], Session],
    work: Callable[[Session], T],
    retry_config: RetryConfig | None = None,
    operation_name: str = "operation",
    on_retry: Callable[[Exception, int], None] | None = None,
) -> T:
    """Run ``work`` in a fresh session and transaction, retrying on conflicts.

    Every attempt opens a new session so the work re-reads current state;
    only ConcurrencyConflictError is retried unless ``retry_config`` says
    otherwise.
    """
    if retry_config is None:
        retry_config = RetryConfig(retryable_exceptions=(ConcurrencyConflictError,))

    def attempt() -> T:
        with session_factory() as session, transaction(session):
            return work(session)

    return with_retry_sync(
        attempt, retry_config, operation_name=operation_name, on_retry=on_retry
    )
