"""
Request queue with exponential-backoff retry and cancellation.

Every backend call made by the API client goes through a RequestQueue:
requests are held in a bounded map keyed by a generated id and drained one
at a time by a timer-driven loop. Failed requests classified as retryable
are parked behind a backoff timer and picked up again by a later pass.
"""

import asyncio
import logging
import random
import string
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from ..errors.exceptions import QueueFullError, RequestCancelledError
from ..utils.retry import RetryConfig, calculate_delay, is_retryable_error

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_request_id() -> str:
    """Generate a request id of the form req_<ms timestamp>_<9 base36 chars>"""
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


@dataclass
class QueuedRequest:
    """A request waiting in (or being processed by) the queue"""
    id: str
    request: Callable[[], Awaitable[Any]]
    future: asyncio.Future
    max_retries: int
    priority: str = "medium"
    retry_count: int = 0
    timestamp: float = field(default_factory=time.time)
    jitter: float = 0.0
    retry_delays: List[float] = field(default_factory=list)

    def __await__(self):
        return self.future.__await__()

    async def result(self) -> Any:
        """Wait for the request to succeed, fail permanently or be cancelled"""
        return await self.future


@dataclass
class QueueStatus:
    """Snapshot of queue state"""
    queue_size: int
    is_processing: bool
    retrying_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queueSize": self.queue_size,
            "isProcessing": self.is_processing,
            "retryingCount": self.retrying_count,
        }


class RequestQueue:
    """
    Bounded, serialized request queue with retry and cancellation.

    Must be used from within a running event loop.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        max_size: int = 100,
        poll_interval: float = 0.1
    ):
        """
        Initialize the queue.

        Args:
            config: Retry/backoff configuration
            max_size: Maximum number of queued requests
            poll_interval: Delay between drain passes while requests remain
        """
        self.config = config or RetryConfig()
        self.max_size = max_size
        self.poll_interval = poll_interval

        self._queue: Dict[str, QueuedRequest] = {}
        self._retry_timers: Dict[str, asyncio.TimerHandle] = {}
        self._is_processing = False
        self._drain_handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    # ========================================================================
    # Submission
    # ========================================================================

    def enqueue(
        self,
        request: Callable[[], Awaitable[Any]],
        max_retries: Optional[int] = None,
        priority: str = "medium"
    ) -> QueuedRequest:
        """
        Add a request to the queue and start draining.

        Args:
            request: Zero-argument coroutine function performing one attempt
            max_retries: Retry limit (defaults to config.max_retries)
            priority: "high", "medium" or "low"

        Returns:
            QueuedRequest handle (awaitable)

        Raises:
            QueueFullError: Queue already holds max_size requests
        """
        if len(self._queue) >= self.max_size:
            raise QueueFullError("Request queue is full. Please try again later.")

        loop = asyncio.get_running_loop()
        item = QueuedRequest(
            id=generate_request_id(),
            request=request,
            future=loop.create_future(),
            max_retries=self.config.max_retries if max_retries is None else max_retries,
            priority=priority if priority in PRIORITY_ORDER else "medium",
            jitter=random.random() * self.config.max_jitter,
        )

        self._queue[item.id] = item
        logger.debug(f"Queued request {item.id} (priority={item.priority}, size={len(self._queue)})")

        self._start_drain()
        return item

    async def submit(
        self,
        request: Callable[[], Awaitable[Any]],
        max_retries: Optional[int] = None,
        priority: str = "medium"
    ) -> Any:
        """Enqueue a request and wait for its result"""
        item = self.enqueue(request, max_retries=max_retries, priority=priority)
        return await item.result()

    # ========================================================================
    # Processing
    # ========================================================================

    def _start_drain(self) -> None:
        """Start a drain pass now unless one is already running"""
        if self._is_processing:
            return
        task = asyncio.get_running_loop().create_task(self._process_queue())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _schedule_drain(self) -> None:
        """Schedule the next drain pass after poll_interval"""
        if self._drain_handle is not None:
            return

        def fire():
            self._drain_handle = None
            self._start_drain()

        self._drain_handle = asyncio.get_running_loop().call_later(self.poll_interval, fire)

    def _ordered(self) -> List[QueuedRequest]:
        return sorted(
            self._queue.values(),
            key=lambda item: (PRIORITY_ORDER[item.priority], item.timestamp)
        )

    async def _process_queue(self) -> None:
        """Drain the queue once, attempting every request not waiting on a retry timer"""
        if self._is_processing:
            return
        self._is_processing = True

        try:
            for item in self._ordered():
                if item.id not in self._queue:
                    continue  # cancelled or finished meanwhile
                if item.id in self._retry_timers:
                    continue  # still backing off

                try:
                    response = await item.request()
                except Exception as e:
                    self._handle_request_error(item, e)
                    continue

                if self._queue.pop(item.id, None) is None:
                    continue  # cancelled while in flight
                self._clear_retry_timer(item.id)
                if not item.future.done():
                    item.future.set_result(response)
        finally:
            self._is_processing = False

            if self._queue:
                self._schedule_drain()

    def _handle_request_error(self, item: QueuedRequest, error: Exception) -> None:
        """Arm a retry timer for retryable errors, otherwise fail the request"""
        if item.id not in self._queue:
            return

        if item.retry_count < item.max_retries and is_retryable_error(error):
            item.retry_count += 1
            delay = self.calculate_delay(item.retry_count - 1, item.jitter)
            item.retry_delays.append(delay)

            logger.warning(
                f"Request {item.id} failed, retrying in {delay * 1000:.0f}ms "
                f"(attempt {item.retry_count}/{item.max_retries}): {error}",
                extra={"request_id": item.id}
            )

            handle = asyncio.get_running_loop().call_later(
                delay, self._retry_timers.pop, item.id, None
            )
            self._retry_timers[item.id] = handle
            return

        del self._queue[item.id]
        self._clear_retry_timer(item.id)

        logger.error(
            f"Request {item.id} failed permanently after {item.retry_count} retries: {error}",
            extra={"request_id": item.id}
        )
        if not item.future.done():
            item.future.set_exception(error)

    def calculate_delay(self, retry_count: int, jitter: float = 0.0) -> float:
        """Backoff delay in seconds for a 0-indexed retry"""
        return calculate_delay(
            retry_count,
            self.config.base_delay,
            self.config.exponential_base,
            self.config.max_delay,
            jitter,
        )

    def _clear_retry_timer(self, request_id: str) -> None:
        handle = self._retry_timers.pop(request_id, None)
        if handle is not None:
            handle.cancel()

    # ========================================================================
    # Cancellation & status
    # ========================================================================

    def cancel_request(self, request_id: str) -> bool:
        """
        Cancel a specific request.

        Returns:
            True if the request was pending and has been cancelled
        """
        item = self._queue.pop(request_id, None)
        if item is None:
            return False

        self._clear_retry_timer(request_id)
        if not item.future.done():
            item.future.set_exception(RequestCancelledError("Request cancelled"))
        logger.debug(f"Cancelled request {request_id}")
        return True

    def cancel_all(self) -> int:
        """
        Cancel all pending requests.

        Returns:
            Number of requests cancelled
        """
        items = list(self._queue.values())
        self._queue.clear()

        for item in items:
            self._clear_retry_timer(item.id)
            if not item.future.done():
                item.future.set_exception(RequestCancelledError("All requests cancelled"))

        if items:
            logger.info(f"Cancelled {len(items)} pending requests")
        return len(items)

    def get_status(self) -> QueueStatus:
        return QueueStatus(
            queue_size=len(self._queue),
            is_processing=self._is_processing,
            retrying_count=len(self._retry_timers),
        )

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, request_id: str) -> bool:
        return request_id in self._queue
