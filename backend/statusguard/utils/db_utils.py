"""Database utility functions."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Substrings of driver messages that indicate a retryable condition
TRANSIENT_MARKERS = (
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
)


def is_transient(error: Exception) -> bool:
    """Whether a driver error is worth retrying."""
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


async def retry_on_lock(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
) -> T:
    """Run a database operation, retrying lock/connection errors with exponential backoff.

    SQLite reports "database is locked" when a concurrent writer holds the WAL
    lock past busy_timeout; PostgreSQL drops connections under load. Both are
    retried, everything else is raised immediately.

    Args:
        operation: Callable returning a fresh awaitable on each call
        max_retries: Maximum number of attempts
        base_delay: Delay before the first retry in seconds (doubles each time)

    Raises:
        OperationalError / InterfaceError once retries are exhausted
    """
    for attempt in range(1, max_retries + 1):
        try:
            return await operation()
        except (OperationalError, InterfaceError) as e:
            if attempt == max_retries or not is_transient(e):
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(f"Transient database error, retrying in {delay}s (attempt {attempt}/{max_retries})")
            await asyncio.sleep(delay)
    raise RuntimeError("retry_on_lock called with max_retries < 1")
