"""
Read retry with exponential backoff.

Only reads go through here.  Writes are never retried by the kernel: a
decrement whose commit outcome is unknown could be applied twice.
"""

import time
from typing import Callable, TypeVar

from inventory_kernel.exceptions import StoreUnavailableError
from inventory_kernel.logging_config import get_logger

logger = get_logger("utils.retry")

T = TypeVar("T")


def retry_read(
    fn: Callable[[], T],
    *,
    operation: str,
    attempts: int = 3,
    backoff_seconds: float = 0.05,
    max_backoff_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` until it succeeds, retrying only on StoreUnavailableError.

    The delay doubles after each failed attempt, capped at
    ``max_backoff_seconds``.  Any other exception propagates immediately.

    Raises:
        ValueError: If ``attempts`` < 1.
        StoreUnavailableError: The last failure once attempts run out.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except StoreUnavailableError:
            if attempt == attempts:
                logger.error(
                    "read_retry_exhausted",
                    extra={"operation": operation, "attempts": attempts},
                )
                raise
            delay = min(backoff_seconds * 2 ** (attempt - 1), max_backoff_seconds)
            logger.warning(
                "read_retry",
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "delay_seconds": delay,
                },
            )
            sleep(delay)

    raise AssertionError("unreachable")
