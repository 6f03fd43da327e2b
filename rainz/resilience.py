"""
Resilience Infrastructure for Rainz

Retry logic with exponential backoff for provider HTTP calls, plus error
categorization for logging and the per-adapter aggregation report.

Conservative strategy: 1 retry, 0.25-1 second delays. Every adapter call
also runs under the aggregator's per-adapter timeout, so retries can
never extend a request beyond that bound.
"""

import asyncio
import json
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Categories of provider errors."""
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 1  # 1 retry = 2 total attempts
    base_delay_seconds: float = 0.25
    max_delay_seconds: float = 1.0
    exponential_base: float = 2.0
    jitter: bool = True

    # HTTP status codes that should NOT trigger retry
    non_retryable_status_codes: tuple = (400, 401, 403, 404, 422)

    # HTTP status codes that SHOULD trigger retry
    retryable_status_codes: tuple = (408, 429, 500, 502, 503, 504)


DEFAULT_RETRY_CONFIG = RetryConfig()

NO_RETRY = RetryConfig(max_retries=0)


def categorize_error(exception: BaseException) -> Tuple[ErrorType, str]:
    """
    Categorize an exception for logging purposes.

    Returns:
        Tuple of (ErrorType, error_message)
    """
    error_msg = str(exception)[:200]

    if isinstance(exception, (httpx.TimeoutException, asyncio.TimeoutError)):
        return (ErrorType.TIMEOUT, f"Timeout: {error_msg}")

    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        if status == 429:
            return (ErrorType.RATE_LIMIT, "HTTP 429 Too Many Requests")
        if status == 503:
            return (ErrorType.RATE_LIMIT, "HTTP 503 Service Unavailable (quota?)")
        return (ErrorType.API_ERROR, f"HTTP {status}")

    if isinstance(exception, httpx.RequestError):
        return (ErrorType.API_ERROR, f"Request error: {error_msg}")

    if isinstance(exception, (json.JSONDecodeError, KeyError, ValueError, TypeError, IndexError)):
        return (ErrorType.PARSE_ERROR, f"Parse error: {error_msg}")

    return (ErrorType.UNKNOWN, error_msg)


def calculate_backoff_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate delay with exponential backoff and optional jitter.

    Args:
        attempt: The retry attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay = min(
        config.base_delay_seconds * (config.exponential_base ** attempt),
        config.max_delay_seconds
    )

    if config.jitter:
        # Add up to 25% jitter
        delay += delay * 0.25 * random.random()

    return delay


def is_retryable_error(exception: BaseException, config: RetryConfig) -> bool:
    """Determine if an exception should trigger a retry."""
    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        if status in config.non_retryable_status_codes:
            return False
        return status in config.retryable_status_codes or status >= 500

    # Timeouts and connection errors are transient
    if isinstance(exception, (httpx.TimeoutException, httpx.RequestError)):
        return True

    # Parse errors are NOT retryable (same bad data will come back)
    return False


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args,
    provider_name: str = "unknown",
    config: Optional[RetryConfig] = None,
    **kwargs
) -> Any:
    """
    Execute an async function with retry logic.

    Unlike a fire-and-forget helper this re-raises the last exception once
    retries are exhausted, so the caller decides what a failure means.

    Args:
        func: Async function to call
        provider_name: Name for logging
        config: Retry configuration (DEFAULT_RETRY_CONFIG if None)
        *args, **kwargs: Arguments to pass to func
    """
    if config is None:
        config = DEFAULT_RETRY_CONFIG

    start_time = time.monotonic()

    for attempt in range(config.max_retries + 1):
        if attempt > 0:
            delay = calculate_backoff_delay(attempt - 1, config)
            logger.info(
                f"[{provider_name}] Retry {attempt}/{config.max_retries} "
                f"after {delay:.2f}s delay"
            )
            await asyncio.sleep(delay)

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            error_type, error_msg = categorize_error(e)
            logger.warning(
                f"[{provider_name}] Attempt {attempt + 1} failed: "
                f"{error_type.value} - {error_msg}"
            )
            if not is_retryable_error(e, config) or attempt >= config.max_retries:
                elapsed = time.monotonic() - start_time
                logger.debug(f"[{provider_name}] Giving up after {attempt + 1} attempt(s), {elapsed:.2f}s")
                raise
            continue

        if attempt > 0:
            elapsed = time.monotonic() - start_time
            logger.info(f"[{provider_name}] Succeeded on attempt {attempt + 1} ({elapsed:.2f}s total)")
        return result
