"""Configuration models for CodeBrief."""

from .config import CONFIG_FILENAME, Config
from .llm_config import LLMConfig
from .scan_config import (
    DEFAULT_CACHE_FILENAME,
    DEFAULT_MANIFEST_FILES,
    DEFAULT_SKIP_DIRS,
    CacheConfig,
    ScanConfig,
)

__all__ = [
    "CONFIG_FILENAME",
    "CacheConfig",
    "Config",
    "DEFAULT_CACHE_FILENAME",
    "DEFAULT_MANIFEST_FILES",
    "DEFAULT_SKIP_DIRS",
    "LLMConfig",
    "ScanConfig",
]
