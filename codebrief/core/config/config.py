"""Top-level configuration for CodeBrief.

Sources are merged per section, lowest precedence first:

1. Defaults
2. ``.codebrief.json`` in the workspace root
3. Environment variables (the workspace ``.env`` is loaded first without
   overriding variables that are already set)
4. CLI arguments
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from codebrief.core.exceptions import ConfigurationError

from .llm_config import LLMConfig
from .scan_config import CacheConfig, ScanConfig

CONFIG_FILENAME = ".codebrief.json"


class Config(BaseModel):
    """Aggregated configuration."""

    workspace: Path = Field(default_factory=Path.cwd)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @property
    def cache_path(self) -> Path:
        return self.workspace / self.cache.filename

    @classmethod
    def load(cls, workspace: Path, args: Any = None) -> Config:
        """Build a configuration for ``workspace`` from every source."""
        workspace = workspace.resolve()

        env_file = workspace / ".env"
        if env_file.is_file():
            load_dotenv(env_file, override=False)

        sections: dict[str, dict[str, Any]] = {"llm": {}, "scan": {}, "cache": {}}

        for name, values in _read_config_file(workspace).items():
            if name in sections and isinstance(values, dict):
                sections[name].update(values)

        try:
            sections["llm"].update(LLMConfig.load_from_env())
            sections["scan"].update(ScanConfig.load_from_env())
            sections["cache"].update(CacheConfig.load_from_env())
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

        if args is not None:
            sections["llm"].update(LLMConfig.extract_cli_overrides(args))
            if getattr(args, "no_cache", False):
                sections["cache"]["enabled"] = False

        try:
            return cls(workspace=workspace, **sections)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


def _read_config_file(workspace: Path) -> dict[str, Any]:
    config_file = workspace / CONFIG_FILENAME
    if not config_file.is_file():
        return {}
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read {config_file.name}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file.name} must contain a JSON object")
    logger.debug(f"Loaded configuration from {config_file}")
    return data
