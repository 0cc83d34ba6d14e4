"""Commit retries for the device registry."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Lowercased fragments of driver messages worth another attempt
_TRANSIENT_MESSAGES = (
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
)


def is_transient_db_error(error: Exception) -> bool:
    """True for lock contention or a dropped connection."""
    if not isinstance(error, (OperationalError, InterfaceError)):
        return False
    text = str(error).lower()
    return any(msg in text for msg in _TRANSIENT_MESSAGES)


async def retry_on_lock(
    coro_func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
) -> T:
    """Await ``coro_func()`` until it succeeds or stops failing transiently.

    A registration arriving while another request holds the SQLite write
    lock waits ``base_delay``, then twice that, and so on. Errors that are
    not transient propagate on the first attempt; the last transient error
    propagates once ``max_retries`` attempts are used up.
    """
    last_error = None
    for attempt in range(max_retries):
        try:
            return await coro_func()
        except (OperationalError, InterfaceError) as e:
            if not is_transient_db_error(e):
                raise
            last_error = e
            delay = base_delay * (2 ** attempt)
            logger.warning(f"Registry write hit a transient error, retrying in {delay}s ({attempt + 1}/{max_retries})")
            await asyncio.sleep(delay)
    raise last_error
