"""Workspace scanning and cache configuration."""

import os
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_CACHE_FILENAME = ".codebrief-analysis-cache.json"

DEFAULT_SKIP_DIRS: tuple[str, ...] = (
    "node_modules",
    ".git",
    ".vscode",
    "dist",
    "build",
    ".next",
    "out",
    "__pycache__",
    ".venv",
    "venv",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
)

DEFAULT_MANIFEST_FILES: tuple[str, ...] = (
    "package.json",
    "pyproject.toml",
    "requirements.txt",
    "Cargo.toml",
    "go.mod",
)


class ScanConfig(BaseModel):
    """Directory tree scanning settings."""

    max_depth: int = Field(
        default=5, ge=0, description="Deepest entry depth listed (root children = 0)"
    )

    skip_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SKIP_DIRS),
        description="Directories listed but never descended below the root",
    )

    ignore_files: list[str] = Field(
        default_factory=lambda: [".gitignore", ".codebriefignore"],
        description="Root-level files providing gitignore-style patterns",
    )

    manifest_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MANIFEST_FILES),
        description="Dependency manifests, first match is sent to the model",
    )

    progress_interval: int = Field(
        default=50, gt=0, description="Entries between progress notifications"
    )

    max_file_chars: int = Field(
        default=20000, gt=0, description="Character cap for file reads by the model"
    )

    @field_validator("skip_dirs", "ignore_files", "manifest_files", mode="before")
    def split_comma_lists(cls, v: Any) -> Any:
        """Accept comma-separated strings from the environment."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        config: dict[str, Any] = {}
        if max_depth := os.getenv("CODEBRIEF_SCAN__MAX_DEPTH"):
            config["max_depth"] = int(max_depth)
        if skip_dirs := os.getenv("CODEBRIEF_SCAN__SKIP_DIRS"):
            config["skip_dirs"] = skip_dirs
        if ignore_files := os.getenv("CODEBRIEF_SCAN__IGNORE_FILES"):
            config["ignore_files"] = ignore_files
        if manifest_files := os.getenv("CODEBRIEF_SCAN__MANIFEST_FILES"):
            config["manifest_files"] = manifest_files
        if interval := os.getenv("CODEBRIEF_SCAN__PROGRESS_INTERVAL"):
            config["progress_interval"] = int(interval)
        if max_chars := os.getenv("CODEBRIEF_SCAN__MAX_FILE_CHARS"):
            config["max_file_chars"] = int(max_chars)
        return config


class CacheConfig(BaseModel):
    """Stage 1 analysis cache settings."""

    enabled: bool = Field(default=True, description="Reuse cached Stage 1 results")

    filename: str = Field(
        default=DEFAULT_CACHE_FILENAME,
        description="Cache record file name, relative to the workspace root",
    )

    @field_validator("filename")
    def validate_filename(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v:
            raise ValueError("Cache filename must be a bare file name")
        return v

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        config: dict[str, Any] = {}
        if enabled := os.getenv("CODEBRIEF_CACHE__ENABLED"):
            config["enabled"] = enabled.strip().lower() in ("1", "true", "yes", "on")
        if filename := os.getenv("CODEBRIEF_CACHE__FILENAME"):
            config["filename"] = filename
        return config
