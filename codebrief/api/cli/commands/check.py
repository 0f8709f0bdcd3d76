"""Check command: health-check the configured LLM endpoint."""

from __future__ import annotations

import argparse
import json

from codebrief.core.config.config import Config
from codebrief.core.exceptions import ConfigurationError, ProviderUnavailableError
from codebrief.llm_manager import create_llm_provider


async def check_command(args: argparse.Namespace, config: Config) -> None:
    provider = create_llm_provider(config.llm)
    if provider is None:
        raise ConfigurationError(
            "No API key configured (set OPENAI_API_KEY or CODEBRIEF_LLM__API_KEY)"
        )

    status = await provider.health_check()

    if getattr(args, "json", False):
        print(json.dumps(status, indent=2, ensure_ascii=False))
    else:
        for key, value in status.items():
            print(f"{key}: {value}")

    if status.get("status") != "healthy":
        raise ProviderUnavailableError(
            f"{status.get('provider')} endpoint is unhealthy: {status.get('error', 'no reply')}"
        )
