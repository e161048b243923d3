"""
Anthropic (Claude) LLM Provider implementation.
"""

import os
import logging
from typing import List, Dict, Any, Optional, AsyncIterator

import anthropic

from .provider import (
    BaseLLMProvider,
    ModelInfo,
    ModelProvider,
    AssistantMessage,
    Usage
)
from ..utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseLLMProvider):
    """
    Provider for Anthropic's Claude models.
    """

    MODELS = {
        "claude-3-5-sonnet-20241022": ModelInfo(
            id="claude-3-5-sonnet-20241022",
            name="Claude 3.5 Sonnet",
            provider=ModelProvider.ANTHROPIC,
            context_window=200000
        ),
        "claude-3-5-haiku-20241022": ModelInfo(
            id="claude-3-5-haiku-20241022",
            name="Claude 3.5 Haiku",
            provider=ModelProvider.ANTHROPIC,
            context_window=200000
        ),
    }

    def __init__(
        self,
        model_id: str = "claude-3-5-sonnet-20241022",
        api_key: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None
    ):
        """
        Initialize Anthropic provider.

        Args:
            model_id: Claude model ID
            api_key: Anthropic API key (or from ANTHROPIC_API_KEY env var)
            client: Preconfigured SDK client
        """
        super().__init__(model_id, api_key)

        if client is None:
            self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not self.api_key:
                raise ValueError("Anthropic API key required (set ANTHROPIC_API_KEY env var)")
            client = anthropic.AsyncAnthropic(api_key=self.api_key)

        self.client = client

        logger.info(f"Anthropic provider initialized with model: {self.model_id}")

    @property
    def model_info(self) -> ModelInfo:
        """Get model information"""
        return self.MODELS.get(
            self.model_id,
            ModelInfo(
                id=self.model_id,
                name=self.model_id,
                provider=ModelProvider.ANTHROPIC,
                context_window=200000
            )
        )

    @retry_with_backoff(max_retries=2)
    async def create_message(
        self,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1024
    ) -> AssistantMessage:
        """
        Create a message using Anthropic API.

        Args:
            system_prompt: System prompt
            messages: Conversation history
            temperature: Sampling temperature
            max_tokens: Max tokens to generate

        Returns:
            AssistantMessage with response
        """
        logger.debug(f"Creating message with {len(messages)} messages, max_tokens={max_tokens}")

        response = await self.client.messages.create(
            model=self.model_id,
            system=system_prompt,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens
        )

        logger.debug(f"Response received: stop_reason={response.stop_reason}")
        return self._parse_response(response)

    async def create_message_stream(
        self,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1024
    ) -> AsyncIterator[str]:
        """
        Create a streaming message.

        Yields text deltas.
        """
        async with self.client.messages.stream(
            model=self.model_id,
            system=system_prompt,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens
        ) as stream:
            async for text in stream.text_stream:
                yield text

    def _parse_response(self, response: Any) -> AssistantMessage:
        """Parse Anthropic API response into AssistantMessage"""
        usage = None
        if getattr(response, "usage", None) is not None:
            usage = Usage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens
            )

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

        return AssistantMessage(
            text=text,
            stop_reason=response.stop_reason,
            usage=usage
        )

    async def close(self) -> None:
        await self.client.close()
