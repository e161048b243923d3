"""
LLM Provider abstraction layer.

Provides a unified interface for the LLM providers the coaching service can
run on (Anthropic, Ollama) using a provider pattern.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, AsyncIterator
from enum import Enum


class ModelProvider(Enum):
    """Supported LLM providers"""
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


@dataclass
class ModelInfo:
    """Information about a specific model"""
    id: str  # Model identifier (e.g., "claude-3-5-haiku-20241022")
    name: str  # Display name
    provider: ModelProvider
    context_window: int
    supports_streaming: bool = True


@dataclass
class Usage:
    """Token usage information"""
    input_tokens: int
    output_tokens: int
    total_tokens: int


@dataclass
class AssistantMessage:
    """Response from the LLM"""
    text: str
    stop_reason: Optional[str] = None
    usage: Optional[Usage] = None


class ILLMProvider(ABC):
    """
    Base interface for LLM providers.

    All providers must implement this interface to be usable by the coaching service.
    """

    @property
    @abstractmethod
    def model_info(self) -> ModelInfo:
        """Get information about the model"""
        pass

    @abstractmethod
    async def create_message(
        self,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1024
    ) -> AssistantMessage:
        """
        Create a message (request-response).

        Args:
            system_prompt: System prompt for the model
            messages: Conversation history ({"role", "content"} dicts)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            AssistantMessage with model response
        """
        pass

    @abstractmethod
    async def create_message_stream(
        self,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1024
    ) -> AsyncIterator[str]:
        """
        Create a message with streaming response.

        Yields:
            Text chunks as they arrive
        """
        pass

    def supports_streaming(self) -> bool:
        """Whether this provider supports streaming"""
        return self.model_info.supports_streaming

    async def close(self) -> None:
        """Release network resources"""
        return None


class BaseLLMProvider(ILLMProvider):
    """
    Base implementation with common functionality.

    Subclasses implement provider-specific logic.
    """

    def __init__(self, model_id: str, api_key: Optional[str] = None):
        self.model_id = model_id
        self.api_key = api_key
        self._validate_config()

    def _validate_config(self) -> None:
        """Validate provider configuration"""
        if not self.model_id:
            raise ValueError("model_id is required")
