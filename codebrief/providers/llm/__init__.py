"""LLM providers for CodeBrief analysis."""

from .openai_llm_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
