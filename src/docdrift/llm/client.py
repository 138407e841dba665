"""LLM transports.

Each transport turns a (system, user) prompt pair into an ``LLMResponse``
with token usage. Prompt construction and response validation belong to
the verifier; transports only move text.

Usage:
    from docdrift.llm import CompletionOptions, create_llm_client

    client = create_llm_client(config.llm)
    response = await client.complete(system, user, CompletionOptions(model=config.llm.model))
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from docdrift.config.engine import LLMConfig
from docdrift.config.settings import Settings, settings as default_settings
from docdrift.errors import LLMError, LLMTimeoutError

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_TIMEOUT = 120.0


@dataclass(frozen=True)
class CompletionOptions:
    model: str
    temperature: float = 0.0
    max_tokens: int = 2000


@dataclass(frozen=True)
class LLMResponse:
    content: str
    model: str
    input_tokens: int
    output_tokens: int


class LLMClient(Protocol):
    """Anything that can complete a system/user prompt pair."""

    async def complete(self, system: str, user: str, options: CompletionOptions) -> LLMResponse:
        ...


class _HttpTransport:
    """Shared httpx plumbing for the concrete transports."""

    provider = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def _post(self, path: str, headers: dict[str, str], payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, headers=headers, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(f"{self.provider} request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise LLMError(f"{self.provider} request failed: {e}") from e

        if response.status_code >= 400:
            raise LLMError(
                f"{self.provider} API error {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise LLMError(f"{self.provider} returned a non-JSON envelope") from e


class AnthropicClient(_HttpTransport):
    """Anthropic messages API."""

    provider = "anthropic"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.anthropic.com",
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(base_url, timeout, http_client)
        self.api_key = api_key

    async def complete(self, system: str, user: str, options: CompletionOptions) -> LLMResponse:
        logger.debug(f"Calling anthropic/{options.model}")
        data = await self._post(
            "/v1/messages",
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            payload={
                "model": options.model,
                "max_tokens": options.max_tokens,
                "temperature": options.temperature,
                "system": system,
                "messages": [{"role": "user", "content": user}],
            },
        )
        text = next(
            (block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"),
            None,
        )
        if text is None:
            raise LLMError("No text content in Anthropic API response")
        usage = data.get("usage", {})
        return LLMResponse(
            content=text,
            model=data.get("model", options.model),
            input_tokens=int(usage.get("input_tokens", 0)),
            output_tokens=int(usage.get("output_tokens", 0)),
        )


class OpenAICompatibleClient(_HttpTransport):
    """OpenAI-compatible chat completions API.

    Also works with vLLM, Azure OpenAI, Together.ai, Groq, etc.
    """

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com",
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(base_url, timeout, http_client)
        self.api_key = api_key

    async def complete(self, system: str, user: str, options: CompletionOptions) -> LLMResponse:
        logger.debug(f"Calling openai-compatible/{options.model}")
        data = await self._post(
            "/v1/chat/completions",
            headers={"Authorization": f"Bearer {self.api_key}"},
            payload={
                "model": options.model,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                "max_tokens": options.max_tokens,
                "temperature": options.temperature,
            },
        )
        choices = data.get("choices", [])
        if not choices:
            raise LLMError("No choices in chat completion response")
        usage = data.get("usage", {})
        return LLMResponse(
            content=choices[0].get("message", {}).get("content", "") or "",
            model=data.get("model", options.model),
            input_tokens=int(usage.get("prompt_tokens", 0)),
            output_tokens=int(usage.get("completion_tokens", 0)),
        )


class OllamaClient(_HttpTransport):
    """Ollama generate API."""

    provider = "ollama"

    async def complete(self, system: str, user: str, options: CompletionOptions) -> LLMResponse:
        logger.debug(f"Calling ollama/{options.model}")
        data = await self._post(
            "/api/generate",
            headers={},
            payload={
                "model": options.model,
                "system": system,
                "prompt": user,
                "stream": False,
                "format": "json",
                "options": {
                    "temperature": options.temperature,
                    "num_predict": options.max_tokens,
                },
            },
        )
        return LLMResponse(
            content=data.get("response", ""),
            model=data.get("model", options.model),
            input_tokens=int(data.get("prompt_eval_count", 0)),
            output_tokens=int(data.get("eval_count", 0)),
        )


def create_llm_client(
    config: LLMConfig,
    env: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> LLMClient | None:
    """Build the transport selected by config.

    Args:
        config: LLM section of the engine config
        env: Environment settings (API keys, default base URLs)
        http_client: Optional shared httpx client

    Returns:
        A transport, or None when Tier 3 is disabled or no API key is available
    """
    if not config.enabled:
        return None
    env = env or default_settings

    if config.provider == "anthropic":
        api_key = config.api_key or env.anthropic_api_key
        if not api_key:
            logger.warning("Anthropic API key not configured (set llm.api_key or ANTHROPIC_API_KEY)")
            return None
        return AnthropicClient(api_key, config.base_url or env.anthropic_base_url, http_client=http_client)

    if config.provider == "openai":
        api_key = config.api_key or env.openai_api_key
        if not api_key:
            logger.warning("OpenAI API key not configured (set llm.api_key or OPENAI_API_KEY)")
            return None
        return OpenAICompatibleClient(api_key, config.base_url or env.openai_base_url, http_client=http_client)

    if config.provider == "vllm":
        return OpenAICompatibleClient(
            config.api_key or env.vllm_api_key,
            config.base_url or env.vllm_base_url,
            http_client=http_client,
        )

    return OllamaClient(config.base_url or env.ollama_base_url, http_client=http_client)
