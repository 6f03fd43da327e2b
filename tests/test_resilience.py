"""
Tests for retry and error categorization.

Run with: python -m pytest tests/test_resilience.py -v
"""

import asyncio
import json
import logging

import httpx
import pytest

from rainz.resilience import (
    ErrorType,
    RetryConfig,
    calculate_backoff_delay,
    categorize_error,
    is_retryable_error,
    retry_async,
)

logger = logging.getLogger(__name__)

FAST = RetryConfig(max_retries=2, base_delay_seconds=0.0, jitter=False)


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://example.test/forecast")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class TestCategorizeError:

    def test_timeouts(self):
        assert categorize_error(httpx.ReadTimeout("slow"))[0] is ErrorType.TIMEOUT
        assert categorize_error(asyncio.TimeoutError())[0] is ErrorType.TIMEOUT

    def test_rate_limits(self):
        assert categorize_error(status_error(429))[0] is ErrorType.RATE_LIMIT
        assert categorize_error(status_error(503))[0] is ErrorType.RATE_LIMIT

    def test_api_errors(self):
        error_type, message = categorize_error(status_error(404))
        assert error_type is ErrorType.API_ERROR
        assert message == "HTTP 404"
        assert categorize_error(httpx.ConnectError("refused"))[0] is ErrorType.API_ERROR

    def test_parse_errors(self):
        assert categorize_error(json.JSONDecodeError("bad", "{", 0))[0] is ErrorType.PARSE_ERROR
        assert categorize_error(KeyError("current"))[0] is ErrorType.PARSE_ERROR

    def test_unknown(self):
        assert categorize_error(RuntimeError("?"))[0] is ErrorType.UNKNOWN


class TestRetryPolicy:

    def test_retryable(self):
        config = RetryConfig()
        assert is_retryable_error(status_error(500), config)
        assert is_retryable_error(status_error(429), config)
        assert is_retryable_error(httpx.ConnectError("refused"), config)

    def test_not_retryable(self):
        config = RetryConfig()
        assert not is_retryable_error(status_error(404), config)
        assert not is_retryable_error(status_error(401), config)
        assert not is_retryable_error(ValueError("bad json"), config)

    def test_backoff_is_capped(self):
        config = RetryConfig(base_delay_seconds=0.25, max_delay_seconds=1.0, jitter=False)
        assert calculate_backoff_delay(0, config) == 0.25
        assert calculate_backoff_delay(1, config) == 0.5
        assert calculate_backoff_delay(5, config) == 1.0


class TestRetryAsync:

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failure(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise status_error(502)
            return "ok"

        result = await retry_async(flaky, provider_name="Test", config=FAST)
        assert result == "ok"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_reraises_after_exhaustion(self):
        calls = []

        async def always_down():
            calls.append(1)
            raise httpx.ConnectError("refused")

        with pytest.raises(httpx.ConnectError):
            await retry_async(always_down, provider_name="Test", config=FAST)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_no_retry_on_client_error(self):
        calls = []

        async def not_found():
            calls.append(1)
            raise status_error(404)

        with pytest.raises(httpx.HTTPStatusError):
            await retry_async(not_found, provider_name="Test", config=FAST)
        logger.info(f"[TEST] 404 attempts: {len(calls)}")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_passes_arguments(self):
        async def add(a, b=0):
            return a + b

        assert await retry_async(add, 2, b=3, config=FAST) == 5
