"""
Transaction helpers for taskboard.

Runs a unit of work as one all-or-nothing store transaction, translates
store exceptions into the taskboard error taxonomy, and retries units of
work that lost against a concurrent writer.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from taskboard.database import DatabaseManager
from taskboard.logging_config import get_logger
from taskboard.models import RetryPolicy
from taskboard.services.errors import (
    ConflictError,
    StoreFailureError,
    TaskBoardError,
    TransactionTimeoutError,
)

logger = get_logger(__name__)

T = TypeVar("T")

UnitOfWork = Callable[[AsyncSession], Awaitable[T]]


def translate_store_error(exc: SQLAlchemyError) -> TaskBoardError:
    """
    Map a SQLAlchemy exception onto the taskboard error taxonomy.

    Args:
        exc: Exception raised by the store

    Returns:
        ConflictError for concurrent-modification failures, StoreFailureError
        otherwise. Constraint violations are store failures; concurrent
        writers surface as StaleDataError from the version columns.
    """
    if isinstance(exc, StaleDataError):
        return ConflictError("Concurrent modification detected, transaction aborted")
    if isinstance(exc, OperationalError) and "locked" in str(exc.orig).lower():
        return ConflictError("Database is locked by another transaction")
    return StoreFailureError(f"Store failure: {exc}")


async def run_in_transaction(
    db_manager: DatabaseManager,
    fn: UnitOfWork,
    timeout: Optional[float] = None,
) -> T:
    """
    Run a unit of work inside a single store transaction.

    The transaction commits only if fn returns normally. On any error,
    including a timeout, everything fn did is rolled back.

    Args:
        db_manager: Initialized database manager
        fn: Coroutine function receiving the transaction's session
        timeout: Seconds before the transaction is aborted (None for no limit)

    Returns:
        Whatever fn returned

    Raises:
        TransactionTimeoutError: If the transaction did not finish in time
        ConflictError: If a concurrent modification was detected
        StoreFailureError: For any other store failure
        TaskBoardError: Domain errors raised by fn, unchanged
    """
    async def attempt() -> T:
        async with db_manager.transaction() as session:
            return await fn(session)

    try:
        if timeout is None:
            return await attempt()
        return await asyncio.wait_for(attempt(), timeout)
    except asyncio.TimeoutError as e:
        logger.warning(f"Transaction exceeded {timeout}s and was rolled back")
        raise TransactionTimeoutError(f"Transaction timed out after {timeout}s") from e
    except SQLAlchemyError as e:
        error = translate_store_error(e)
        logger.warning(f"Transaction rolled back: {error}")
        raise error from e


async def run_with_retry(
    db_manager: DatabaseManager,
    fn: UnitOfWork,
    policy: RetryPolicy,
) -> Tuple[T, int]:
    """
    Run a unit of work, repeating the whole transaction on recoverable errors.

    Every attempt gets a fresh session, so nothing from an aborted attempt
    is visible to the next one.

    Args:
        db_manager: Initialized database manager
        fn: Coroutine function receiving the transaction's session
        policy: Attempt count, backoff and per-attempt timeout

    Returns:
        Tuple of (fn's result, number of attempts used)

    Raises:
        TaskBoardError: The last error, once it is not recoverable or
                        attempts are exhausted
    """
    attempt = 1
    while True:
        try:
            result = await run_in_transaction(db_manager, fn, policy.transaction_timeout)
            return result, attempt
        except TaskBoardError as e:
            if not e.recoverable or attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt)
            logger.info(
                f"Retrying after recoverable error (attempt {attempt}/{policy.max_attempts}, "
                f"delay={delay:.3f}s): {e}"
            )
            await asyncio.sleep(delay)
            attempt += 1
