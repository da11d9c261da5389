"""Transaction boundary for service operations that must commit or roll back as a whole."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from assessment_platform.core.exceptions import (
    ApplicationError,
    ConcurrencyConflictError,
    ConflictError,
    TransientStoreError,
)

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
CONCURRENCY_SQLSTATES = frozenset({"40001", "40P01"})
# lock_not_available, query_canceled (lock_timeout / statement_timeout)
TIMEOUT_SQLSTATES = frozenset({"55P03", "57014"})


def _sqlstate(exc: DBAPIError):
    orig = getattr(exc, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_store_error(exc: Exception, label: str) -> ApplicationError:
    """Map a persistence failure onto the domain error taxonomy."""
    if isinstance(exc, StaleDataError):
        return ConcurrencyConflictError(
            f"{label}: the record was modified by another request. Reload and retry.",
            details={"reason": "stale_version"},
        )

    if isinstance(exc, DBAPIError):
        sqlstate = _sqlstate(exc)
        if sqlstate in CONCURRENCY_SQLSTATES:
            return ConcurrencyConflictError(
                f"{label}: concurrent update detected. Reload and retry.",
                details={"sqlstate": sqlstate},
            )
        if isinstance(exc, IntegrityError):
            return ConflictError(
                f"{label}: the change conflicts with existing data.",
                details={"sqlstate": sqlstate} if sqlstate else {},
            )
        if sqlstate in TIMEOUT_SQLSTATES or isinstance(exc, OperationalError):
            return TransientStoreError(
                f"{label}: the database is busy. Please retry.",
                details={"sqlstate": sqlstate} if sqlstate else {},
            )

    return TransientStoreError(f"{label}: the change could not be saved. Please retry.")


@asynccontextmanager
async def unit_of_work(session: AsyncSession, label: str) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed block as one transaction on ``session``.

    Commits when the block completes. Any failure rolls back every write made
    in the block. Domain errors propagate unchanged; store failures are
    translated into ConcurrencyConflictError, ConflictError or
    TransientStoreError.
    """
    try:
        yield session
        await session.commit()
    except ApplicationError:
        await session.rollback()
        raise
    except (StaleDataError, DBAPIError) as e:
        await session.rollback()
        error = translate_store_error(e, label)
        if error.retryable:
            logger.warning(f"[TRANSACTION] {label} rolled back ({error.error_code}): {e}")
        else:
            logger.error(f"[TRANSACTION] {label} rolled back: {e}", exc_info=True)
        raise error from e
    except Exception:
        await session.rollback()
        logger.error(f"[TRANSACTION] {label} rolled back on unexpected error", exc_info=True)
        raise
