"""
Tests for retry classification, backoff calculation and retry policies.
"""

import asyncio

import anthropic
import httpx
import pytest

from ignite.errors import (
    ApiConnectionError,
    ApiTimeoutError,
    HttpStatusError,
    QueueFullError,
    RequestCancelledError,
)
from ignite.utils.retry import (
    MUTATION_RETRY_POLICY,
    QUERY_RETRY_POLICY,
    RetryConfig,
    calculate_delay,
    is_retryable_error,
    retry_with_backoff,
    run_with_policy,
    status_code_of,
)


class TestErrorClassification:
    """Tests for is_retryable_error"""

    @pytest.mark.parametrize("status", [500, 502, 503, 504, 408, 429])
    def test_transient_statuses_are_retryable(self, status):
        assert is_retryable_error(HttpStatusError(status, "boom")) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_client_errors_are_not_retryable(self, status):
        assert is_retryable_error(HttpStatusError(status, "nope")) is False

    def test_network_errors_are_retryable(self):
        assert is_retryable_error(ApiConnectionError("connection refused")) is True
        assert is_retryable_error(ApiTimeoutError("Request timed out")) is True
        assert is_retryable_error(httpx.ConnectError("refused")) is True

    def test_auth_messages_are_never_retried(self):
        """A server error mentioning credentials is still permanent"""
        assert is_retryable_error(HttpStatusError(500, "Invalid credentials")) is False
        assert is_retryable_error(Exception("Unauthorized")) is False

    def test_plain_errors_are_not_retryable(self):
        assert is_retryable_error(ValueError("bad value")) is False

    def test_network_words_in_message_do_not_make_errors_retryable(self):
        assert is_retryable_error(ValueError("timeout must be a positive number")) is False
        assert is_retryable_error(RuntimeError("connection pool misconfigured")) is False

    def test_anthropic_connection_errors_are_retryable(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        assert is_retryable_error(anthropic.APIConnectionError(request=request)) is True
        assert is_retryable_error(anthropic.APITimeoutError(request=request)) is True

    def test_status_code_of_httpx_error(self):
        request = httpx.Request("GET", "http://x/api")
        response = httpx.Response(503, request=request)
        error = httpx.HTTPStatusError("unavailable", request=request, response=response)
        assert status_code_of(error) == 503

    def test_http_status_error_name(self):
        error = HttpStatusError(404, "Not found", "/api/x")
        assert error.name == "HttpError404"
        assert str(error) == "404: Not found"


class TestBackoff:
    """Tests for delay calculation"""

    def test_exponential_growth(self):
        delays = [calculate_delay(n, 1.0, 2.0, 10.0) for n in range(4)]
        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_cap_applies_before_jitter(self):
        assert calculate_delay(10, 1.0, 2.0, 10.0) == 10.0
        assert calculate_delay(10, 1.0, 2.0, 10.0, jitter=0.5) == 10.5

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "5")
        monkeypatch.setenv("RETRY_BASE_DELAY", "0.5")
        config = RetryConfig.from_env()
        assert config.max_retries == 5
        assert config.base_delay == 0.5
        assert config.max_delay == 10.0


class TestRetryPolicies:
    """Tests for query/mutation policies"""

    def test_query_policy_skips_server_errors(self):
        assert QUERY_RETRY_POLICY.should_retry(0, HttpStatusError(500, "Server error")) is False
        assert QUERY_RETRY_POLICY.should_retry(0, ApiConnectionError("connection reset")) is True

    def test_query_policy_limits_failures(self):
        error = ApiConnectionError("connection reset")
        assert QUERY_RETRY_POLICY.should_retry(2, error) is True
        assert QUERY_RETRY_POLICY.should_retry(3, error) is False

    def test_mutation_policy(self):
        assert MUTATION_RETRY_POLICY.should_retry(0, HttpStatusError(503, "busy")) is True
        assert MUTATION_RETRY_POLICY.should_retry(2, HttpStatusError(503, "busy")) is False
        assert MUTATION_RETRY_POLICY.should_retry(0, HttpStatusError(404, "missing")) is False

    @pytest.mark.parametrize("policy", [QUERY_RETRY_POLICY, MUTATION_RETRY_POLICY])
    def test_cancelled_and_rejected_requests_are_never_retried(self, policy):
        assert policy.should_retry(0, RequestCancelledError("Request cancelled")) is False
        assert policy.should_retry(0, QueueFullError("Request queue is full")) is False

    def test_policy_delays_are_capped(self):
        assert QUERY_RETRY_POLICY.retry_delay(0) == 1.0
        assert QUERY_RETRY_POLICY.retry_delay(10) == 30.0
        assert MUTATION_RETRY_POLICY.retry_delay(10) == 10.0

    @pytest.mark.asyncio
    async def test_run_with_policy_retries_then_succeeds(self):
        attempts = []
        sleeps = []

        async def operation():
            attempts.append(1)
            if len(attempts) < 3:
                raise ApiConnectionError("connection reset")
            return "ok"

        async def fake_sleep(delay):
            sleeps.append(delay)

        result = await run_with_policy(MUTATION_RETRY_POLICY, operation, sleep=fake_sleep)

        assert result == "ok"
        assert len(attempts) == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_run_with_policy_raises_when_not_retryable(self):
        async def operation():
            raise HttpStatusError(400, "Bad request")

        with pytest.raises(HttpStatusError):
            await run_with_policy(MUTATION_RETRY_POLICY, operation)


class TestRetryDecorator:
    """Tests for retry_with_backoff"""

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, mocker):
        mocker.patch("ignite.utils.retry.asyncio.sleep", new=mocker.AsyncMock())
        calls = []

        @retry_with_backoff(max_retries=2, base_delay=0.01)
        async def flaky():
            calls.append(1)
            if len(calls) < 2:
                raise asyncio.TimeoutError()
            return "done"

        assert await flaky() == "done"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, mocker):
        mocker.patch("ignite.utils.retry.asyncio.sleep", new=mocker.AsyncMock())
        calls = []

        @retry_with_backoff(max_retries=2, base_delay=0.01)
        async def always_down():
            calls.append(1)
            raise HttpStatusError(503, "unavailable")

        with pytest.raises(HttpStatusError):
            await always_down()
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_does_not_retry_permanent_errors(self):
        calls = []

        @retry_with_backoff(max_retries=3)
        async def rejected():
            calls.append(1)
            raise HttpStatusError(403, "Forbidden")

        with pytest.raises(HttpStatusError):
            await rejected()
        assert len(calls) == 1
