"""LLM provider interface used by the analysis pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolCall:
    """A model-issued request to invoke a declared tool.

    ``arguments`` is the raw JSON string produced by the model; it may be
    malformed.
    """

    id: str
    name: str
    arguments: str = "{}"

    def to_message(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class LLMResponse:
    """Response from an LLM completion."""

    content: str
    tokens_used: int
    model: str
    finish_reason: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    reasoning: str | None = None

    @property
    def text(self) -> str:
        """Content, or the reasoning field when content is empty."""
        if self.content and self.content.strip():
            return self.content
        return self.reasoning or ""


class LLMProvider(ABC):
    """Abstract chat-completion provider."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Default model name."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
        model: str | None = None,
    ) -> LLMResponse:
        """Generate a completion for a single prompt."""

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
        model: str | None = None,
    ) -> LLMResponse:
        """Continue a conversation, optionally declaring tools."""

    def estimate_tokens(self, text: str) -> int:
        """Estimate token count for text (rough approximation)."""
        return len(text) // 4

    async def health_check(self) -> dict[str, Any]:
        try:
            response = await self.complete("Say 'OK'", max_completion_tokens=10)
            return {
                "status": "healthy",
                "provider": self.name,
                "model": self.model,
                "test_response": response.content[:50],
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "provider": self.name,
                "model": self.model,
                "error": str(e),
            }

    def get_usage_stats(self) -> dict[str, Any]:
        return {}
