"""
Retry helpers.

Builds and network calls are the only operations that are retried; both use
the same fixed-delay strategy.
"""

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def simple_retry(
    func: Callable[[], T],
    max_attempts: int = 3,
    delay: float = 1.0,
    context: str = "operation",
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    should_retry: Optional[Callable[[T], bool]] = None,
) -> T:
    """
    Call ``func`` until it succeeds or the attempts are exhausted.

    Args:
        func: Function to retry
        max_attempts: Maximum number of attempts
        delay: Delay between attempts in seconds
        context: Context description for log messages
        retry_on: Exception types that trigger another attempt
        should_retry: Optional predicate on the result; a True return value
            counts as a failed attempt. The last result is returned as-is
            when attempts run out.

    Returns:
        Result from func

    Raises:
        Exception: Last exception if all attempts raise
    """
    last_exception: Optional[BaseException] = None
    result = None

    for attempt in range(max_attempts):
        try:
            result = func()
        except retry_on as e:
            last_exception = e
            if attempt < max_attempts - 1:
                logger.debug(f"Attempt {attempt + 1} failed for {context}: {e}")
                time.sleep(delay)
                continue
            logger.error(f"All {max_attempts} attempts failed for {context}: {e}")
            raise

        last_exception = None
        if should_retry is not None and should_retry(result):
            if attempt < max_attempts - 1:
                logger.info(
                    f"Attempt {attempt + 1} of {max_attempts} for {context} was unsuccessful, "
                    f"retrying in {delay:g}s"
                )
                time.sleep(delay)
                continue
            logger.warning(f"{context} still unsuccessful after {max_attempts} attempts")
            return result

        if attempt > 0:
            logger.info(f"Operation '{context}' succeeded on attempt {attempt + 1}")
        return result

    if last_exception is not None:
        raise last_exception
    return result
