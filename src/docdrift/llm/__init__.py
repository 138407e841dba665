"""LLM transports used by Tier 3 verification.

Usage:
    from docdrift.llm import create_llm_client

    client = create_llm_client(config.llm)
    if client is not None:
        response = await client.complete(system, user, options)
"""
from .client import (
    AnthropicClient,
    CompletionOptions,
    LLMClient,
    LLMResponse,
    OllamaClient,
    OpenAICompatibleClient,
    create_llm_client,
)

__all__ = [
    "AnthropicClient",
    "CompletionOptions",
    "LLMClient",
    "LLMResponse",
    "OllamaClient",
    "OpenAICompatibleClient",
    "create_llm_client",
]
