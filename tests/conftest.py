"""
Shared pytest fixtures for Ignite tests.

Provides:
- Zero-delay retry configuration and request queues
- A fake Ignite backend built on httpx.MockTransport
- A scripted LLM provider
- A temporary local store
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from ignite.api import IgniteApiClient, IgniteApiConfig, RequestQueue
from ignite.llm.provider import AssistantMessage, BaseLLMProvider, ModelInfo, ModelProvider
from ignite.persistence import LocalStore
from ignite.utils.retry import RetryConfig


# ============================================================================
# Queue Fixtures
# ============================================================================

@pytest.fixture
def fast_retry_config() -> RetryConfig:
    """Retry config with no backoff delay and no jitter"""
    return RetryConfig(max_retries=3, base_delay=0.0, max_delay=0.0, max_jitter=0.0)


@pytest.fixture
def queue(fast_retry_config) -> RequestQueue:
    return RequestQueue(config=fast_retry_config, max_size=100, poll_interval=0.005)


# ============================================================================
# Fake Backend
# ============================================================================

class FakeBackend:
    """
    Route table for httpx.MockTransport.

    Handlers are keyed by (METHOD, path). A handler is either a response
    tuple (status, json_body) or a callable taking the request. A list of
    tuples is consumed one entry per call (last entry repeats).
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[httpx.Request] = []

    def add(self, method: str, path: str, handler: Any) -> None:
        self.routes[(method.upper(), path)] = handler

    def count(self, method: str, path: str) -> int:
        return sum(
            1 for r in self.calls
            if r.method == method.upper() and r.url.path == path
        )

    def body_of(self, index: int = -1) -> Any:
        return json.loads(self.calls[index].content or b"null")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))

        if handler is None:
            return httpx.Response(404, json={"message": "Not found"})

        if callable(handler):
            return handler(request)

        if isinstance(handler, list):
            entry = handler.pop(0) if len(handler) > 1 else handler[0]
        else:
            entry = handler

        status, body = entry
        return httpx.Response(status, json=body)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def api_config(fast_retry_config) -> IgniteApiConfig:
    return IgniteApiConfig(base_url="http://ignite.test", timeout=5.0, retry=fast_retry_config)


@pytest_asyncio.fixture
async def api_client(api_config, backend, queue):
    client = IgniteApiClient(
        api_config,
        cookies={"connect.sid": "session-1"},
        transport=httpx.MockTransport(backend),
        queue=queue
    )
    await client.connect()
    yield client
    await client.close()


# ============================================================================
# LLM Fixtures
# ============================================================================

class ScriptedProvider(BaseLLMProvider):
    """LLM provider returning canned replies (or raising canned errors)"""

    def __init__(self, replies: Optional[List[Any]] = None):
        super().__init__("scripted-model")
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Any]] = []

    @property
    def model_info(self) -> ModelInfo:
        return ModelInfo(
            id=self.model_id,
            name="Scripted",
            provider=ModelProvider.OLLAMA,
            context_window=4096
        )

    async def create_message(self, system_prompt, messages, temperature=0.7, max_tokens=1024):
        self.calls.append({"system_prompt": system_prompt, "messages": messages})
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return AssistantMessage(text=reply)

    async def create_message_stream(self, system_prompt, messages, temperature=0.7, max_tokens=1024):
        message = await self.create_message(system_prompt, messages, temperature, max_tokens)
        yield message.text


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedProvider]:
    """Factory: scripted_provider(reply1, reply2, ...)"""
    return lambda *replies: ScriptedProvider(list(replies))


# ============================================================================
# Persistence Fixtures
# ============================================================================

@pytest.fixture
def store(tmp_path) -> LocalStore:
    return LocalStore(tmp_path / "local-store.json")
