"""Retry logic for the country directory using tenacity."""

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else "Unknown error"
    logger.warning(f"REST Countries attempt {retry_state.attempt_number}: {error}")


def directory_retrying(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
) -> AsyncRetrying:
    """Build the retry policy for REST Countries requests.

    Only transport failures (connection errors, timeouts) are retried; HTTP
    error statuses and malformed payloads fail immediately.

    Args:
        max_attempts: Maximum number of attempts, including the first one
        min_wait: Lower bound of the exponential backoff in seconds
        max_wait: Upper bound of the exponential backoff in seconds

    Returns:
        An AsyncRetrying iterator that re-raises the last error when exhausted

    """
    return AsyncRetrying(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        before_sleep=_log_before_sleep,
        reraise=True,
    )
