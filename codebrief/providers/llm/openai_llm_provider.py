"""OpenAI-compatible chat completions provider.

Works against api.openai.com or any gateway exposing the same API (e.g.
OpenRouter), which is how the reasoning-model defaults are reached.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from openai import AsyncOpenAI, OpenAIError

from codebrief.interfaces.llm_provider import LLMProvider, LLMResponse, ToolCall


class OpenAILLMProvider(LLMProvider):
    """Chat completions via the official ``openai`` SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
        base_url: str | None = None,
        timeout: int = 120,
        max_retries: int = 3,
        temperature: float = 0.7,
        client: AsyncOpenAI | None = None,
    ):
        """Initialize the provider.

        Args:
            api_key: API key for the endpoint
            model: Default model name
            base_url: Optional OpenAI-compatible base URL
            timeout: Request timeout in seconds
            max_retries: Retry attempts performed by the SDK
            temperature: Sampling temperature
            client: Pre-built client (tests)
        """
        self._model = model
        self._timeout = timeout
        self._temperature = temperature
        self._base_url = base_url
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )

        # Usage tracking
        self._requests_made = 0
        self._tokens_used = 0
        self._prompt_tokens = 0
        self._completion_tokens = 0

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
        model: str | None = None,
    ) -> LLMResponse:
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return await self.chat(
            messages,
            max_completion_tokens=max_completion_tokens,
            timeout=timeout,
            model=model,
        )

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
        model: str | None = None,
    ) -> LLMResponse:
        request_model = model or self._model
        kwargs: dict[str, Any] = {
            "model": request_model,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": max_completion_tokens,
            "timeout": timeout if timeout is not None else self._timeout,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            logger.error(f"OpenAI completion failed: {e}")
            raise RuntimeError(f"LLM completion failed: {e}") from e

        if not response.choices:
            raise RuntimeError("LLM completion failed: response contained no choices")

        choice = response.choices[0]
        message = choice.message

        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=call.function.arguments or "{}",
            )
            for call in (message.tool_calls or [])
            if getattr(call, "function", None) is not None
        ]

        usage = response.usage
        prompt_tokens = usage.prompt_tokens if usage else 0
        completion_tokens = usage.completion_tokens if usage else 0
        total_tokens = usage.total_tokens if usage else 0

        self._requests_made += 1
        self._prompt_tokens += prompt_tokens
        self._completion_tokens += completion_tokens
        self._tokens_used += total_tokens

        return LLMResponse(
            content=message.content or "",
            tokens_used=total_tokens,
            model=response.model or request_model,
            finish_reason=choice.finish_reason,
            tool_calls=tool_calls,
            reasoning=_reasoning_text(message),
        )

    async def health_check(self) -> dict[str, Any]:
        status = await super().health_check()
        status["base_url"] = self._base_url or "default"
        return status

    def get_usage_stats(self) -> dict[str, Any]:
        return {
            "requests_made": self._requests_made,
            "total_tokens": self._tokens_used,
            "prompt_tokens": self._prompt_tokens,
            "completion_tokens": self._completion_tokens,
        }


def _reasoning_text(message: Any) -> str | None:
    """Reasoning emitted by gateway models, under either field name."""
    for attr in ("reasoning", "reasoning_content"):
        value = getattr(message, attr, None)
        if isinstance(value, str) and value.strip():
            return value
    extra = getattr(message, "model_extra", None) or {}
    for key in ("reasoning", "reasoning_content"):
        value = extra.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None
