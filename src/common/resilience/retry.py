"""
Retry helpers for operations that can fail transiently.
Uses tenacity with exponential backoff; works for sync and async callables.
"""
import logging

import httpx
from sqlalchemy.exc import DisconnectionError, OperationalError, TimeoutError
from tenacity import (
    after_log,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Database errors worth retrying
DB_RETRY_EXCEPTIONS = (
    OperationalError,
    DisconnectionError,
    TimeoutError,
    ConnectionError,
)

# Network errors worth retrying for idempotent provider reads
HTTP_RETRY_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ReadTimeout,
    httpx.RemoteProtocolError,
)


def retry_db_operation(
    max_attempts: int = 3,
    initial_wait: float = 1.0,
    max_wait: float = 10.0,
    multiplier: float = 2.0,
):
    """
    Decorator that retries database operations.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        initial_wait: Initial wait in seconds (default: 1.0)
        max_wait: Maximum wait in seconds (default: 10.0)
        multiplier: Exponential backoff multiplier (default: 2.0)
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=multiplier,
            min=initial_wait,
            max=max_wait,
        ),
        retry=retry_if_exception_type(DB_RETRY_EXCEPTIONS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.ERROR),
        reraise=True,
    )


def retry_with_backoff(
    max_attempts: int = 3,
    initial_wait: float = 1.0,
    max_wait: float = 10.0,
    multiplier: float = 2.0,
    retry_exceptions: tuple = HTTP_RETRY_EXCEPTIONS,
):
    """
    Generic retry decorator with exponential backoff.

    Only use it on idempotent calls (balance and price reads). Transfers are
    never retried automatically.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=multiplier,
            min=initial_wait,
            max=max_wait,
        ),
        retry=retry_if_exception_type(retry_exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.ERROR),
        reraise=True,
    )
