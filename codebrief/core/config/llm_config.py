"""LLM configuration for CodeBrief.

Both analysis stages talk to an OpenAI-compatible chat completions endpoint.
The extraction model runs Stage 1 (tool-augmented structured extraction) and
the polish model runs Stage 2 (markdown and diagram).
"""

import argparse
import os
from typing import Any, Literal

from pydantic import BaseModel, Field, SecretStr, field_validator


class LLMConfig(BaseModel):
    """LLM provider configuration.

    Configuration can be provided via:
    - Environment variables (CODEBRIEF_LLM__*, OPENAI_API_KEY, AI_GATEWAY_API_KEY)
    - The workspace .codebrief.json file
    - CLI arguments
    - Default values
    """

    provider: Literal["openai"] = Field(
        default="openai", description="LLM provider (OpenAI-compatible API)"
    )

    api_key: SecretStr | None = Field(default=None, description="API key")

    base_url: str | None = Field(
        default=None,
        description="Base URL for OpenAI-compatible gateways (e.g. OpenRouter)",
    )

    extraction_model: str = Field(
        default="minimax/minimax-m2",
        description="Model used for Stage 1 structured extraction",
    )

    polish_model: str = Field(
        default="moonshotai/kimi-k2-thinking",
        description="Model used for Stage 2 markdown polishing",
    )

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    extraction_max_tokens: int = Field(default=4000, gt=0)

    polish_max_tokens: int = Field(default=10000, gt=0)

    timeout: int = Field(
        default=120, gt=0, description="Per-request timeout in seconds"
    )

    max_retries: int = Field(
        default=3, ge=0, description="Retries performed by the SDK client"
    )

    max_tool_iterations: int = Field(
        default=3,
        ge=1,
        description="Ceiling on Stage 1 tool-call / re-prompt rounds",
    )

    @field_validator("base_url")
    def validate_base_url(cls, v: str | None) -> str | None:
        """Treat blank base URLs as unset."""
        if v is not None and not v.strip():
            return None
        return v

    def is_configured(self) -> bool:
        """Check if an API key is available."""
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    def get_api_key(self) -> str | None:
        return self.api_key.get_secret_value() if self.api_key else None

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add LLM-related CLI arguments."""
        parser.add_argument(
            "--api-key",
            help="API key for the completion service (default: from env/.env)",
        )
        parser.add_argument(
            "--base-url",
            help="Base URL of an OpenAI-compatible endpoint",
        )
        parser.add_argument(
            "--model-extraction",
            help="Model for Stage 1 structured extraction",
        )
        parser.add_argument(
            "--model-polish",
            help="Model for Stage 2 polishing",
        )
        parser.add_argument(
            "--timeout",
            type=int,
            help="Per-request timeout in seconds",
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load LLM config from environment variables."""
        config: dict[str, Any] = {}
        if api_key := (
            os.getenv("CODEBRIEF_LLM__API_KEY")
            or os.getenv("AI_GATEWAY_API_KEY")
            or os.getenv("OPENAI_API_KEY")
        ):
            if api_key != "YOUR_API_KEY_HERE":
                config["api_key"] = api_key
        if base_url := (
            os.getenv("CODEBRIEF_LLM__BASE_URL") or os.getenv("OPENAI_BASE_URL")
        ):
            config["base_url"] = base_url
        if model := os.getenv("CODEBRIEF_LLM__EXTRACTION_MODEL"):
            config["extraction_model"] = model
        if model := os.getenv("CODEBRIEF_LLM__POLISH_MODEL"):
            config["polish_model"] = model
        if timeout := os.getenv("CODEBRIEF_LLM__TIMEOUT"):
            config["timeout"] = int(timeout)
        if retries := os.getenv("CODEBRIEF_LLM__MAX_RETRIES"):
            config["max_retries"] = int(retries)
        if iterations := os.getenv("CODEBRIEF_LLM__MAX_TOOL_ITERATIONS"):
            config["max_tool_iterations"] = int(iterations)
        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract LLM config from CLI arguments."""
        overrides: dict[str, Any] = {}
        if getattr(args, "api_key", None):
            overrides["api_key"] = args.api_key
        if getattr(args, "base_url", None):
            overrides["base_url"] = args.base_url
        if getattr(args, "model_extraction", None):
            overrides["extraction_model"] = args.model_extraction
        if getattr(args, "model_polish", None):
            overrides["polish_model"] = args.model_polish
        if getattr(args, "timeout", None):
            overrides["timeout"] = args.timeout
        return overrides

    def __repr__(self) -> str:
        return (
            f"LLMConfig(provider={self.provider}, extraction={self.extraction_model}, "
            f"polish={self.polish_model}, configured={self.is_configured()})"
        )
