"""
LLM module - Provides LLM provider abstractions for AI coaching.
"""

import os
from typing import Optional

from .provider import (
    ILLMProvider,
    BaseLLMProvider,
    ModelInfo,
    ModelProvider,
    Usage,
    AssistantMessage
)
from .anthropic_provider import AnthropicProvider
from .ollama_provider import OllamaProvider


def create_llm_provider(
    provider_type: Optional[str] = None,
    model_id: Optional[str] = None,
    api_key: Optional[str] = None,
    **kwargs
) -> ILLMProvider:
    """
    Factory function to create an LLM provider.

    Args:
        provider_type: "anthropic" or "ollama" (default: LLM_PROVIDER env var, then anthropic)
        model_id: Model identifier (default: LLM_MODEL_ID env var)
        api_key: API key (default: LLM_API_KEY env var)
        **kwargs: Additional provider-specific arguments

    Returns:
        ILLMProvider instance

    Raises:
        ValueError: If provider_type is unknown
    """
    provider_type = (provider_type or os.getenv("LLM_PROVIDER", "anthropic")).lower()
    model_id = model_id or os.getenv("LLM_MODEL_ID")
    api_key = api_key or os.getenv("LLM_API_KEY")

    if provider_type == "anthropic":
        model_id = model_id or "claude-3-5-sonnet-20241022"
        return AnthropicProvider(model_id=model_id, api_key=api_key, client=kwargs.get("client"))

    elif provider_type == "ollama":
        model_id = model_id or "llama3.1:8b"
        return OllamaProvider(
            model_id=model_id,
            base_url=kwargs.get("base_url"),
            api_key=api_key,
            timeout=kwargs.get("timeout"),
            transport=kwargs.get("transport")
        )

    else:
        raise ValueError(
            f"Unknown provider type: {provider_type}. "
            f"Supported: anthropic, ollama"
        )


__all__ = [
    # Base classes
    "ILLMProvider",
    "BaseLLMProvider",
    "ModelInfo",
    "ModelProvider",
    "Usage",
    "AssistantMessage",
    # Providers
    "AnthropicProvider",
    "OllamaProvider",
    # Factory
    "create_llm_provider",
]
