"""
Database query utilities with retry logic
"""
import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def classify_error(error: Exception) -> str:
    """
    Classify a database error as 'pool', 'connection', 'timeout' or 'fatal'

    Only the first three are considered transient.
    """
    error_str = str(error).lower()
    error_type = type(error).__name__

    if (
        "maxclientsinsessionmode" in error_str
        or "max clients reached" in error_str
        or "connection pool" in error_str
        or "queuepool limit" in error_str
    ):
        return "pool"

    if "connection" in error_str and (
        "closed" in error_str or "lost" in error_str or "reset" in error_str
    ):
        return "connection"

    if error_type == "TimeoutError" or "timeout" in error_str or "CancelledError" in error_type:
        return "timeout"

    return "fatal"


async def execute_with_retry(
    session: AsyncSession,
    query: Any,
    max_retries: int = 3,
    initial_delay: float = 0.5
) -> Any:
    """
    Execute query with retry logic for transient database errors

    Args:
        session: Database session
        query: SQLAlchemy statement
        max_retries: Maximum number of attempts
        initial_delay: Initial delay between retries (exponential backoff)

    Returns:
        Query result

    Raises:
        The last database error once retries are exhausted, or immediately
        for non-transient errors (constraint violations, syntax errors, ...)
    """
    for attempt in range(max_retries):
        try:
            return await session.execute(query)
        except Exception as e:
            kind = classify_error(e)
            logger.warning(
                "Database error on attempt %d/%d: %s: %s",
                attempt + 1, max_retries, type(e).__name__, str(e)[:200],
            )

            if kind == "fatal":
                raise

            if attempt == max_retries - 1:
                logger.error("Max retries reached, failing with %s", type(e).__name__)
                raise

            # Exponential backoff: 0.5s, 1s, 2s; doubled for timeouts
            delay = initial_delay * (2 ** attempt)
            if kind == "timeout":
                delay *= 2
            logger.info("Retrying after %ss (%s error)", delay, kind)
            await asyncio.sleep(delay)

    raise RuntimeError("execute_with_retry completed without result or error")
