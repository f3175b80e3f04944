"""Tests for provider registry environment variable handling.

The registry picks a backend from an explicit name, then LLM_PRIMARY, then the
default. A dotenv file passed in must be loaded before LLM_PRIMARY is read.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from typecast.llm.provider import LLMProvider
from typecast.llm.provider_registry import (
    _PROVIDER_FACTORIES,
    DEFAULT_PROVIDER,
    available_providers,
    create_provider,
)


class MockProvider(LLMProvider):
    """Mock provider for testing."""

    def __init__(self, name: str):
        self.name = name
        self.system_prompt: str | Path | None = None
        self.dotenv_path: str | Path | None = None

    def generate_response(
        self, prompt: str, *, json_schema: dict[str, Any] | None = None
    ) -> str:
        return "{}"

    def health_check(self) -> bool:
        return True


def mock_provider_factory(name: str):
    def factory(*, system_prompt: str | Path | None, dotenv_path: str | Path | None):
        provider = MockProvider(name)
        provider.system_prompt = system_prompt
        provider.dotenv_path = dotenv_path
        return provider

    return factory


@pytest.fixture
def mock_factories(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(_PROVIDER_FACTORIES, "mock1", mock_provider_factory("mock1"))
    monkeypatch.setitem(_PROVIDER_FACTORIES, "mock2", mock_provider_factory("mock2"))
    monkeypatch.setitem(
        _PROVIDER_FACTORIES, DEFAULT_PROVIDER, mock_provider_factory(DEFAULT_PROVIDER)
    )
    monkeypatch.delenv("LLM_PRIMARY", raising=False)


def test_available_providers_lists_builtin_backends() -> None:
    names = available_providers()

    assert "gemini" in names
    assert "mistral" in names


def test_explicit_name_overrides_environment(
    mock_factories: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("LLM_PRIMARY", "mock2")

    provider = create_provider("mock1", system_prompt="test")

    assert provider.name == "mock1"


def test_reads_llm_primary_from_environment(
    mock_factories: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("LLM_PRIMARY", "  Mock2 ")

    assert create_provider().name == "mock2"


def test_uses_default_without_environment(mock_factories: None) -> None:
    assert create_provider().name == DEFAULT_PROVIDER


def test_passes_system_prompt_and_dotenv_to_factory(
    mock_factories: None, tmp_path: Path
) -> None:
    env_file = tmp_path / "test.env"
    env_file.write_text("MOCK_API_KEY=test_key\n", encoding="utf-8")

    try:
        provider = create_provider("mock1", system_prompt="sys", dotenv_path=env_file)
    finally:
        os.environ.pop("MOCK_API_KEY", None)

    assert isinstance(provider, MockProvider)
    assert provider.system_prompt == "sys"
    assert provider.dotenv_path == env_file


def test_unknown_provider_raises(
    mock_factories: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("LLM_PRIMARY", "unknown_provider")

    with pytest.raises(ValueError, match="Unknown LLM provider 'unknown_provider'"):
        create_provider()


def test_dotenv_is_loaded_before_llm_primary_is_read(
    mock_factories: None, tmp_path: Path
) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("LLM_PRIMARY=mock1\n", encoding="utf-8")

    try:
        provider = create_provider(dotenv_path=env_file)
    finally:
        os.environ.pop("LLM_PRIMARY", None)

    assert provider.name == "mock1"
