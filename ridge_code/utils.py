"""Common utilities for Ridge-Code."""

import logging
import random
import time
from typing import Any, Callable, Dict, Optional, TypeVar


T = TypeVar("T")


def compute_backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 10.0,
                          jitter_ratio: float = 0.1,
                          rand: Optional[Callable[[], float]] = None) -> float:
    """
    Compute the delay before the next retry.

    The capped exponential delay ``min(base_delay * 2**attempt, max_delay)`` gets up
    to ``jitter_ratio`` of itself added so that many clients failing together do
    not retry in lockstep.

    Args:
        attempt: Zero-based retry index (0 for the first retry)
        base_delay: Delay for the first retry in seconds
        max_delay: Upper bound for the exponential part in seconds
        jitter_ratio: Fraction of the delay added as random jitter
        rand: Source of uniform random numbers in [0, 1), random.random by default

    Returns:
        Delay in seconds
    """
    if rand is None:
        rand = random.random
    delay = min(base_delay * (2 ** attempt), max_delay)
    return delay + rand() * jitter_ratio * delay


def call_with_backoff(func: Callable[[], T], max_retries: int = 3, base_delay: float = 1.0,
                      max_delay: float = 10.0, jitter_ratio: float = 0.1,
                      should_retry: Optional[Callable[[Exception], bool]] = None,
                      sleep: Callable[[float], None] = time.sleep,
                      description: str = "operation") -> T:
    """
    Call ``func`` until it succeeds, retrying failures with exponential backoff.

    ``func`` is attempted at most ``max_retries + 1`` times. The last exception is
    re-raised once retries are exhausted or when ``should_retry`` rejects it.
    """
    logger = logging.getLogger(__name__)
    attempt = 0

    while True:
        try:
            if attempt > 0:
                logger.info(f"Retry attempt {attempt}/{max_retries} for {description}")
            return func()

        except Exception as e:
            if should_retry is not None and not should_retry(e):
                logger.warning(f"Non-retriable error in {description}: {e}")
                raise

            if attempt >= max_retries:
                logger.error(f"All {max_retries + 1} attempts failed for {description}: {e}")
                raise

            wait_time = compute_backoff_delay(attempt, base_delay, max_delay, jitter_ratio)
            logger.warning(f"Attempt {attempt + 1} failed for {description}: {e}. "
                           f"Retrying in {wait_time:.1f}s...")
            sleep(wait_time)
            attempt += 1


def extract_error_message(error_response: Any) -> str:
    """Extract meaningful error message from API response."""
    if isinstance(error_response, dict):
        # Check for common error fields
        if error_response.get("error"):
            return str(error_response["error"])
        elif error_response.get("message"):
            return str(error_response["message"])
        elif error_response.get("detail"):
            return str(error_response["detail"])

    return str(error_response)


def truncate(text: str, limit: int = 50, suffix: str = "...") -> str:
    """Shorten ``text`` to ``limit`` characters, marking the cut with ``suffix``."""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


def remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None (one level deep)."""
    return {k: v for k, v in data.items() if v is not None}
