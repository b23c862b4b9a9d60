"""Bounded exponential-backoff retry for document-store reads."""
import asyncio
import inspect
import logging
from typing import Awaitable, Callable, TypeVar, Union

from ..errors import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 3
DEFAULT_BASE_DELAY = 0.5


def is_transient(exc: BaseException) -> bool:
    """Only offline/unavailable store conditions are worth another attempt."""
    return isinstance(exc, StoreUnavailableError)


async def with_retry(
    operation: Callable[[], Union[T, Awaitable[T]]],
    retries: int = DEFAULT_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    description: str = "store read",
) -> T:
    """
    Run ``operation`` and retry it on transient errors.

    The first retry waits ``base_delay`` seconds and every following retry
    doubles the delay. After ``retries`` retries the last error is raised.
    Non-transient errors (permission denied, not found, ...) propagate on
    the first attempt.

    Args:
        operation: Zero-argument callable; may be sync or return an awaitable.
        retries: Maximum number of retries after the first attempt.
        base_delay: Delay before the first retry, in seconds.
        description: Label used in log messages.
    """
    attempt = 0
    delay = base_delay
    while True:
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            if not is_transient(e) or attempt >= retries:
                raise
            attempt += 1
            logger.warning(
                f"[RETRY] {description} failed ({e}); retry {attempt}/{retries} in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
            delay *= 2
