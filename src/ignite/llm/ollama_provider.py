"""
Ollama LLM Provider implementation for local models.
"""

import os
import json
import logging
from typing import List, Dict, Any, Optional, AsyncIterator

import httpx

from .provider import (
    BaseLLMProvider,
    ModelInfo,
    ModelProvider,
    AssistantMessage,
    Usage
)
from ..utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class OllamaProvider(BaseLLMProvider):
    """
    Provider for Ollama local models (Llama 3.x, Qwen 2.5, Mistral, ...).
    """

    def __init__(
        self,
        model_id: str = "llama3.1:8b",
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Ollama provider.

        Args:
            model_id: Ollama model name (e.g., "llama3.1:8b")
            base_url: Ollama server URL (or from OLLAMA_BASE_URL env var)
            api_key: Optional API key (not usually needed for local Ollama)
            timeout: Read timeout in seconds. If None, reads from OLLAMA_TIMEOUT
                     env var (default: 120). 0 means unlimited.
            transport: Custom httpx transport (tests)
        """
        super().__init__(model_id, api_key)
        self.base_url = base_url or os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

        if timeout is None:
            timeout_str = os.getenv("OLLAMA_TIMEOUT", "120")
            try:
                timeout = float(timeout_str)
            except ValueError:
                logger.warning(f"Invalid OLLAMA_TIMEOUT value: {timeout_str}, using default 120")
                timeout = 120.0

        # Connecting to a local server is fast; generation may not be
        timeout_config = httpx.Timeout(
            connect=10.0,
            read=timeout or None,
            write=30.0,
            pool=10.0
        )

        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_config,
            headers=headers,
            transport=transport
        )

        logger.info(f"Ollama provider initialized with model {self.model_id} at {self.base_url}")

    @property
    def model_info(self) -> ModelInfo:
        """Get model information"""
        return ModelInfo(
            id=self.model_id,
            name=self.model_id,
            provider=ModelProvider.OLLAMA,
            context_window=self._estimate_context_window()
        )

    def _estimate_context_window(self) -> int:
        """Estimate context window based on model name"""
        model_lower = self.model_id.lower()

        if "32k" in model_lower or "qwen" in model_lower:
            return 32768
        if "16k" in model_lower:
            return 16384
        if "8k" in model_lower or "llama3" in model_lower:
            return 8192

        # Conservative default
        return 4096

    def _build_request(
        self,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        temperature: float,
        max_tokens: int,
        stream: bool
    ) -> Dict[str, Any]:
        ollama_messages = []
        if system_prompt:
            ollama_messages.append({"role": "system", "content": system_prompt})
        ollama_messages.extend(
            {"role": msg["role"], "content": msg["content"]} for msg in messages
        )

        return {
            "model": self.model_id,
            "messages": ollama_messages,
            "stream": stream,
            "format": "json",
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens
            }
        }

    @retry_with_backoff(max_retries=2)
    async def create_message(
        self,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1024
    ) -> AssistantMessage:
        """
        Create a message using Ollama's /api/chat endpoint.
        """
        request_data = self._build_request(system_prompt, messages, temperature, max_tokens, False)

        response = await self.client.post("/api/chat", json=request_data)
        response.raise_for_status()

        return self._parse_ollama_response(response.json())

    async def create_message_stream(
        self,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1024
    ) -> AsyncIterator[str]:
        """
        Create a streaming message using Ollama.

        Yields text chunks.
        """
        request_data = self._build_request(system_prompt, messages, temperature, max_tokens, True)

        async with self.client.stream("POST", "/api/chat", json=request_data) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                chunk = json.loads(line)
                text = chunk.get("message", {}).get("content", "")
                if text:
                    yield text

    def _parse_ollama_response(self, response: Dict[str, Any]) -> AssistantMessage:
        """
        Parse Ollama response into AssistantMessage.

        Handles both the native format ({"message": {...}}) and the
        OpenAI-compatible one ({"choices": [{"message": {...}}]}).
        """
        if "choices" in response:
            message_data = response["choices"][0]["message"]
            stop_reason = response["choices"][0].get("finish_reason")
        else:
            message_data = response.get("message", {})
            stop_reason = response.get("done_reason")

        text = message_data.get("content") or ""
        if not text:
            logger.error("Ollama returned empty content")

        usage = None
        if "usage" in response:
            usage_data = response["usage"]
            usage = Usage(
                input_tokens=usage_data.get("prompt_tokens", 0),
                output_tokens=usage_data.get("completion_tokens", 0),
                total_tokens=usage_data.get("total_tokens", 0)
            )
        elif "prompt_eval_count" in response or "eval_count" in response:
            usage = Usage(
                input_tokens=response.get("prompt_eval_count", 0),
                output_tokens=response.get("eval_count", 0),
                total_tokens=response.get("prompt_eval_count", 0) + response.get("eval_count", 0)
            )

        return AssistantMessage(text=text, stop_reason=stop_reason, usage=usage)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
