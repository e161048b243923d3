"""
Tests for the RequestQueue

Covers submission, retry with backoff, permanent failures, priority
ordering, capacity limits and cancellation.
"""

import asyncio
import re

import pytest

from ignite.api import RequestQueue, generate_request_id
from ignite.errors import HttpStatusError, QueueFullError, RequestCancelledError
from ignite.utils.retry import RetryConfig


def flaky(failures, error_factory, result="ok"):
    """Build a request that fails `failures` times before succeeding"""
    attempts = []

    async def request():
        attempts.append(1)
        if len(attempts) <= failures:
            raise error_factory()
        return result

    return request, attempts


class TestRequestIds:

    def test_id_format(self):
        assert re.fullmatch(r"req_\d+_[0-9a-z]{9}", generate_request_id())

    def test_ids_are_unique(self):
        assert len({generate_request_id() for _ in range(200)}) == 200


class TestSubmission:
    """Tests for successful requests"""

    @pytest.mark.asyncio
    async def test_submit_returns_result(self, queue):
        async def request():
            return {"id": 1}

        assert await queue.submit(request) == {"id": 1}
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_enqueue_returns_awaitable_handle(self, queue):
        async def request():
            return 42

        item = queue.enqueue(request)
        assert item.id in queue
        assert await item == 42
        assert item.id not in queue

    @pytest.mark.asyncio
    async def test_unknown_priority_falls_back_to_medium(self, queue):
        async def request():
            return None

        item = queue.enqueue(request, priority="urgent")
        assert item.priority == "medium"
        await item

    @pytest.mark.asyncio
    async def test_priority_order(self, queue):
        order = []

        def make(name):
            async def request():
                order.append(name)
                return name
            return request

        items = [
            queue.enqueue(make("low"), priority="low"),
            queue.enqueue(make("medium"), priority="medium"),
            queue.enqueue(make("high"), priority="high"),
        ]
        await asyncio.gather(*(item.result() for item in items))

        assert order == ["high", "medium", "low"]


class TestRetries:
    """Tests for retry and backoff behavior"""

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, queue):
        request, attempts = flaky(2, lambda: HttpStatusError(503, "Service unavailable"))

        item = queue.enqueue(request, max_retries=3)
        assert await item == "ok"
        assert len(attempts) == 3
        assert item.retry_count == 2
        assert len(item.retry_delays) == 2

    @pytest.mark.asyncio
    async def test_permanent_error_fails_immediately(self, queue):
        request, attempts = flaky(5, lambda: HttpStatusError(400, "Bad request"))

        with pytest.raises(HttpStatusError) as exc_info:
            await queue.submit(request)

        assert exc_info.value.status_code == 400
        assert len(attempts) == 1
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_plain_error_mentioning_timeout_is_not_retried(self, queue):
        request, attempts = flaky(5, lambda: ValueError("timeout must be a positive number"))

        with pytest.raises(ValueError):
            await queue.submit(request, max_retries=3)

        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, queue):
        request, attempts = flaky(10, lambda: HttpStatusError(500, "Internal error"))

        with pytest.raises(HttpStatusError):
            await queue.submit(request, max_retries=2)

        assert len(attempts) == 3
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_zero_retries(self, queue):
        request, attempts = flaky(1, lambda: HttpStatusError(502, "Bad gateway"))

        with pytest.raises(HttpStatusError):
            await queue.submit(request, max_retries=0)
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_retry_waits_for_backoff(self):
        queue = RequestQueue(
            config=RetryConfig(base_delay=0.05, max_delay=1.0, max_jitter=0.0),
            poll_interval=0.005
        )
        request, attempts = flaky(1, lambda: HttpStatusError(503, "busy"))

        item = queue.enqueue(request)
        await asyncio.sleep(0.02)

        # Still parked behind the 50ms retry timer
        assert len(attempts) == 1
        assert queue.get_status().retrying_count == 1

        assert await item == "ok"
        assert len(attempts) == 2
        assert item.retry_delays == [0.05]

    def test_calculate_delay(self):
        queue = RequestQueue(config=RetryConfig())
        assert [queue.calculate_delay(n) for n in range(5)] == [1.0, 2.0, 4.0, 8.0, 10.0]
        assert queue.calculate_delay(0, jitter=0.25) == 1.25

    @pytest.mark.asyncio
    async def test_delays_never_decrease(self):
        queue = RequestQueue(
            config=RetryConfig(base_delay=0.001, max_delay=0.004, max_jitter=0.002),
            poll_interval=0.001
        )
        request, _ = flaky(4, lambda: HttpStatusError(503, "busy"))

        item = queue.enqueue(request, max_retries=4)
        await item

        assert item.retry_delays == sorted(item.retry_delays)
        assert all(d - item.jitter <= 0.004 + 1e-9 for d in item.retry_delays)


class TestCapacityAndCancellation:
    """Tests for queue limits and cancellation"""

    @pytest.mark.asyncio
    async def test_queue_full(self, fast_retry_config):
        queue = RequestQueue(config=fast_retry_config, max_size=1)
        release = asyncio.Event()

        async def blocked():
            await release.wait()
            return "done"

        first = queue.enqueue(blocked)
        with pytest.raises(QueueFullError, match="Request queue is full"):
            queue.enqueue(blocked)

        release.set()
        assert await first == "done"

    @pytest.mark.asyncio
    async def test_cancel_request(self, queue):
        release = asyncio.Event()

        async def blocked():
            await release.wait()
            return "late"

        item = queue.enqueue(blocked)
        await asyncio.sleep(0)

        assert queue.cancel_request(item.id) is True
        assert queue.cancel_request(item.id) is False

        with pytest.raises(RequestCancelledError, match="Request cancelled"):
            await item

        # The in-flight attempt finishing later must not resurrect the request
        release.set()
        await asyncio.sleep(0.01)
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_cancel_retrying_request(self):
        queue = RequestQueue(config=RetryConfig(base_delay=10.0, max_jitter=0.0), poll_interval=0.005)
        request, attempts = flaky(5, lambda: HttpStatusError(503, "busy"))

        item = queue.enqueue(request)
        await asyncio.sleep(0.01)
        assert queue.get_status().retrying_count == 1

        assert queue.cancel_request(item.id) is True
        assert queue.get_status().retrying_count == 0
        with pytest.raises(RequestCancelledError):
            await item
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_cancel_all(self, queue):
        release = asyncio.Event()

        async def blocked():
            await release.wait()

        items = [queue.enqueue(blocked) for _ in range(3)]

        assert queue.cancel_all() == 3
        assert len(queue) == 0
        for item in items:
            with pytest.raises(RequestCancelledError, match="All requests cancelled"):
                await item

        release.set()

    @pytest.mark.asyncio
    async def test_status_snapshot(self, queue):
        status = queue.get_status()
        assert status.to_dict() == {"queueSize": 0, "isProcessing": False, "retryingCount": 0}
