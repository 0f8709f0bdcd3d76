"""Providers package for CodeBrief - concrete implementations of abstract interfaces.

Use lazy import to avoid importing the OpenAI SDK during package import.
"""

__all__ = [
    "OpenAILLMProvider",
]


def __getattr__(name: str):
    if name == "OpenAILLMProvider":
        from .llm import OpenAILLMProvider  # lazy

        return OpenAILLMProvider
    raise AttributeError(name)
