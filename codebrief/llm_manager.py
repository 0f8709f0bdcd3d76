"""Build the LLM provider described by an ``LLMConfig``."""

from __future__ import annotations

from loguru import logger

from codebrief.core.config.llm_config import LLMConfig
from codebrief.interfaces.llm_provider import LLMProvider


def create_llm_provider(config: LLMConfig) -> LLMProvider | None:
    """Return a provider, or None when no API key is configured.

    Without a provider the pipeline runs entirely on local fallbacks.
    """
    if not config.is_configured():
        logger.warning(
            "No API key configured (set OPENAI_API_KEY or CODEBRIEF_LLM__API_KEY); "
            "using local fallback analysis"
        )
        return None

    if config.provider == "openai":
        from codebrief.providers.llm.openai_llm_provider import OpenAILLMProvider

        return OpenAILLMProvider(
            api_key=config.get_api_key(),
            model=config.extraction_model,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            temperature=config.temperature,
        )

    raise ValueError(f"Unknown LLM provider: {config.provider}")
