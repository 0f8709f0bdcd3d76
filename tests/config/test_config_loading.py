"""Tests for layered configuration loading."""

import argparse
import json
from pathlib import Path

import pytest

from codebrief.core.config import CacheConfig, Config, LLMConfig, ScanConfig
from codebrief.core.exceptions import ConfigurationError

ENV_VARS = [
    "OPENAI_API_KEY",
    "AI_GATEWAY_API_KEY",
    "OPENAI_BASE_URL",
    "CODEBRIEF_LLM__API_KEY",
    "CODEBRIEF_LLM__BASE_URL",
    "CODEBRIEF_LLM__EXTRACTION_MODEL",
    "CODEBRIEF_LLM__POLISH_MODEL",
    "CODEBRIEF_LLM__TIMEOUT",
    "CODEBRIEF_LLM__MAX_RETRIES",
    "CODEBRIEF_LLM__MAX_TOOL_ITERATIONS",
    "CODEBRIEF_SCAN__MAX_DEPTH",
    "CODEBRIEF_SCAN__SKIP_DIRS",
    "CODEBRIEF_SCAN__IGNORE_FILES",
    "CODEBRIEF_SCAN__MANIFEST_FILES",
    "CODEBRIEF_SCAN__PROGRESS_INTERVAL",
    "CODEBRIEF_SCAN__MAX_FILE_CHARS",
    "CODEBRIEF_CACHE__ENABLED",
    "CODEBRIEF_CACHE__FILENAME",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _args(**kwargs) -> argparse.Namespace:
    parser = argparse.ArgumentParser()
    LLMConfig.add_cli_arguments(parser)
    parser.add_argument("--no-cache", action="store_true")
    argv: list[str] = []
    for key, value in kwargs.items():
        flag = "--" + key.replace("_", "-")
        if value is True:
            argv.append(flag)
        else:
            argv.extend([flag, str(value)])
    return parser.parse_args(argv)


def test_defaults(tmp_path: Path):
    config = Config.load(tmp_path)

    assert config.workspace == tmp_path.resolve()
    assert config.llm.extraction_model == "minimax/minimax-m2"
    assert config.llm.polish_model == "moonshotai/kimi-k2-thinking"
    assert config.llm.timeout == 120
    assert config.llm.max_tool_iterations == 3
    assert not config.llm.is_configured()
    assert config.scan.max_depth == 5
    assert "node_modules" in config.scan.skip_dirs
    assert config.cache.enabled
    assert config.cache_path == tmp_path.resolve() / ".codebrief-analysis-cache.json"


def test_openai_key_fallback(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")

    assert Config.load(tmp_path).llm.get_api_key() == "sk-openai"


def test_namespaced_key_wins(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
    monkeypatch.setenv("CODEBRIEF_LLM__API_KEY", "sk-codebrief")

    assert Config.load(tmp_path).llm.get_api_key() == "sk-codebrief"


def test_placeholder_key_is_ignored(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "YOUR_API_KEY_HERE")

    assert not Config.load(tmp_path).llm.is_configured()


def test_config_file_then_env_then_cli(tmp_path: Path, monkeypatch):
    (tmp_path / ".codebrief.json").write_text(
        json.dumps(
            {
                "llm": {"extraction_model": "file-model", "polish_model": "file-polish"},
                "scan": {"max_depth": 2},
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("CODEBRIEF_LLM__POLISH_MODEL", "env-polish")

    config = Config.load(tmp_path, _args(model_extraction="cli-model", no_cache=True))

    assert config.llm.extraction_model == "cli-model"
    assert config.llm.polish_model == "env-polish"
    assert config.scan.max_depth == 2
    assert not config.cache.enabled


def test_dotenv_does_not_override_real_env(tmp_path: Path, monkeypatch):
    (tmp_path / ".env").write_text(
        "OPENAI_API_KEY=sk-from-dotenv\nCODEBRIEF_LLM__TIMEOUT=30\n", encoding="utf-8"
    )
    monkeypatch.setenv("OPENAI_API_KEY", "sk-real")

    config = Config.load(tmp_path)

    assert config.llm.get_api_key() == "sk-real"
    assert config.llm.timeout == 30


def test_malformed_config_file(tmp_path: Path):
    (tmp_path / ".codebrief.json").write_text("{oops", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        Config.load(tmp_path)


def test_non_object_config_file(tmp_path: Path):
    (tmp_path / ".codebrief.json").write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        Config.load(tmp_path)


def test_invalid_values_raise_configuration_error(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("CODEBRIEF_CACHE__FILENAME", "nested/cache.json")

    with pytest.raises(ConfigurationError):
        Config.load(tmp_path)


def test_non_numeric_env_raises_configuration_error(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("CODEBRIEF_LLM__TIMEOUT", "soon")

    with pytest.raises(ConfigurationError):
        Config.load(tmp_path)


def test_scan_env_comma_lists(monkeypatch):
    monkeypatch.setenv("CODEBRIEF_SCAN__SKIP_DIRS", "vendor, target ,")

    config = ScanConfig(**ScanConfig.load_from_env())

    assert config.skip_dirs == ["vendor", "target"]


def test_scan_env_manifest_files_and_progress_interval(monkeypatch):
    monkeypatch.setenv("CODEBRIEF_SCAN__MANIFEST_FILES", "Cargo.toml,go.mod")
    monkeypatch.setenv("CODEBRIEF_SCAN__PROGRESS_INTERVAL", "10")

    config = ScanConfig(**ScanConfig.load_from_env())

    assert config.manifest_files == ["Cargo.toml", "go.mod"]
    assert config.progress_interval == 10


def test_cache_env_flag(monkeypatch):
    monkeypatch.setenv("CODEBRIEF_CACHE__ENABLED", "off")

    assert CacheConfig(**CacheConfig.load_from_env()).enabled is False


def test_blank_base_url_is_unset():
    assert LLMConfig(base_url="  ").base_url is None


def test_repr_hides_api_key():
    config = LLMConfig(api_key="sk-secret")

    assert "sk-secret" not in repr(config)
    assert "configured=True" in repr(config)
