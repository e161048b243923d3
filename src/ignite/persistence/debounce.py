"""
Master debouncer for workbook saves and AI feedback requests.

Rapid edits would otherwise flood the backend with identical saves. All
delayed operations go through one MasterDebouncer, which deduplicates calls
sharing a key while one is pending and warns when the call volume looks like
a flood.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..api.models import WorkbookResponse
from ..errors.exceptions import RequestCancelledError

logger = logging.getLogger(__name__)


@dataclass
class DebounceStats:
    """Request counters since creation or the last cancel_all"""
    total_requests: int = 0
    deduplicated_requests: int = 0
    last_flood_warning: Optional[float] = None


def operation_key(kind: str, user_id: int, step_number: int, question_key: str, text: str) -> str:
    """Deduplication key; texts of equal length for the same question collapse"""
    return f"{kind}-{user_id}-{step_number}-{question_key}-{len(text)}"


class MasterDebouncer:
    """
    Delays and deduplicates async operations by key.

    A call whose key already has a pending operation does not schedule a new
    one: it waits on the pending result instead.
    """

    def __init__(
        self,
        default_delay: float = 0.5,
        flood_threshold: int = 20,
        flood_warning_interval: float = 10.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize debouncer.

        Args:
            default_delay: Seconds to wait before running an operation
            flood_threshold: Request count above which flooding is reported
            flood_warning_interval: Minimum seconds between flood warnings
            clock: Time source for flood warnings
        """
        self.default_delay = default_delay
        self.flood_threshold = flood_threshold
        self.flood_warning_interval = flood_warning_interval
        self._clock = clock

        self.stats = DebounceStats()
        self._pending: Dict[str, asyncio.Future] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    def _check_for_flooding(self) -> bool:
        """Log a warning if the request volume looks like a flood"""
        now = self._clock()
        last = self.stats.last_flood_warning

        if self.stats.total_requests > self.flood_threshold and (
            last is None or now - last > self.flood_warning_interval
        ):
            logger.warning(
                f"API call flooding detected: {self.stats.total_requests} requests, "
                f"{self.stats.deduplicated_requests} deduplicated"
            )
            self.stats.last_flood_warning = now
            return True
        return False

    async def debounced_operation(
        self,
        key: str,
        operation: Callable[[], Awaitable[Any]],
        delay: Optional[float] = None
    ) -> Any:
        """
        Run an operation after a delay, sharing the result with duplicate calls.

        Args:
            key: Deduplication key
            operation: Zero-argument coroutine function
            delay: Seconds to wait (defaults to default_delay)

        Returns:
            The operation result

        Raises:
            Whatever the operation raises; RequestCancelledError on cancel_all
        """
        self.stats.total_requests += 1

        pending = self._pending.get(key)
        if pending is not None:
            self.stats.deduplicated_requests += 1
            logger.debug(f"Deduplicated request: {key}")
            self._check_for_flooding()
            return await asyncio.shield(pending)

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending[key] = future
        self._timers[key] = loop.call_later(
            self.default_delay if delay is None else delay,
            self._fire,
            key,
            operation,
        )

        return await asyncio.shield(future)

    def _fire(self, key: str, operation: Callable[[], Awaitable[Any]]):
        self._timers.pop(key, None)
        future = self._pending.get(key)
        if future is None:
            return

        task = asyncio.get_running_loop().create_task(self._execute(key, operation, future))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(
        self,
        key: str,
        operation: Callable[[], Awaitable[Any]],
        future: asyncio.Future
    ):
        logger.debug(f"Executing operation: {key}")
        try:
            result = await operation()
        except Exception as e:
            logger.error(f"Operation failed: {key}: {e}")
            self._release(key, future)
            if not future.done():
                future.set_exception(e)
            return

        self._release(key, future)
        if not future.done():
            future.set_result(result)

    def _release(self, key: str, future: asyncio.Future):
        if self._pending.get(key) is future:
            del self._pending[key]

    async def debounced_workbook_save(
        self,
        response: WorkbookResponse,
        save_operation: Callable[[WorkbookResponse], Awaitable[Any]]
    ) -> Any:
        """
        Debounce a workbook answer save.

        Args:
            response: The answer to save
            save_operation: Coroutine function performing the save
                (e.g. IgniteApiClient.save_workbook_response)
        """
        key = operation_key(
            "workbook-save",
            response.user_id,
            response.step_number,
            response.question_key,
            response.response_text,
        )
        logger.debug(f"Queuing workbook save {key} ({len(response.response_text)} chars)")

        return await self.debounced_operation(key, lambda: save_operation(response))

    async def debounced_ai_feedback(
        self,
        user_id: int,
        section_title: str,
        question_text: str,
        response_text: str,
        feedback_operation: Callable[..., Awaitable[Any]]
    ) -> Any:
        """
        Debounce an AI feedback request (1s delay).

        feedback_operation is called with user_id, section_title,
        question_text and response_text keyword arguments.
        """
        key = operation_key(
            "ai-feedback",
            user_id,
            0,
            f"{section_title}-{question_text}",
            response_text,
        )
        logger.debug(f"Queuing AI feedback {key}")

        return await self.debounced_operation(
            key,
            lambda: feedback_operation(
                user_id=user_id,
                section_title=section_title,
                question_text=question_text,
                response_text=response_text,
            ),
            delay=1.0,
        )

    def cancel_all(self) -> int:
        """
        Cancel every pending operation and reset statistics.

        Returns:
            Number of operations cancelled
        """
        count = len(self._pending)
        logger.info(f"Cancelling {count} pending operations")

        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

        for future in self._pending.values():
            if not future.done():
                future.set_exception(RequestCancelledError("Debounced operation cancelled"))
        self._pending.clear()

        self.stats = DebounceStats()
        return count

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_requests": self.stats.total_requests,
            "deduplicated_requests": self.stats.deduplicated_requests,
            "last_flood_warning": self.stats.last_flood_warning,
            "pending_operations": len(self._pending),
            "active_timeouts": len(self._timers),
        }
