from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, cast

import pytest
from mistralai import Mistral

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from typecast.llm.mistral_llm import MistralLLM
from typecast.llm.provider import (
    LLMProvider,
    LLMProviderConfigurationError,
    LLMProviderError,
    LLMQuotaError,
)


class _DummyMessage:
    def __init__(self, content: Any) -> None:
        self.content = content


class _DummyChoice:
    def __init__(self, message: _DummyMessage) -> None:
        self.message = message
        self.finish_reason = "stop"


class _ChoicesResponse:
    def __init__(self, content: Any) -> None:
        self.choices = [_DummyChoice(_DummyMessage(content))]


class _OutputsResponse:
    def __init__(self, content: Any) -> None:
        self.outputs = [SimpleNamespace(content=content)]


class _Conversations:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.calls: list[dict[str, object]] = []
        self._response = response if response is not None else _OutputsResponse("mock-response")
        self._error = error

    def start(self, **kwargs: object) -> Any:
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._response


class _DummyClient:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.beta = SimpleNamespace(
            conversations=_Conversations(response=response, error=error)
        )

    @property
    def calls(self) -> list[dict[str, object]]:
        return self.beta.conversations.calls


class _QuotaExceededError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.status_code = 429


def test_generate_response_sends_prompt_and_instructions(tmp_path: Path) -> None:
    system_prompt_path = tmp_path / "system.md"
    system_text = "## System\nFollow the rules."
    system_prompt_path.write_text(system_text, encoding="utf-8")
    client = _DummyClient()
    llm = MistralLLM(system_prompt=system_prompt_path, client=cast(Mistral, client))

    result = llm.generate_response("Return a user.")

    assert result == "mock-response"
    assert len(client.calls) == 1
    call = client.calls[0]
    assert call["model"] == llm.MODEL
    assert call["instructions"] == system_text
    assert call["tools"] == []
    first_input = cast(list, call["inputs"])[0]
    assert getattr(first_input, "role") == "user"
    assert getattr(first_input, "content") == "Return a user."
    completion_args = cast(dict, call["completion_args"])
    assert completion_args == {"temperature": 0.2}


def test_instructions_omitted_without_system_prompt() -> None:
    client = _DummyClient()
    llm = MistralLLM(client=cast(Mistral, client))

    llm.generate_response("Prompt")

    assert "instructions" not in client.calls[0]


def test_schema_hint_becomes_strict_response_format() -> None:
    client = _DummyClient()
    llm = MistralLLM(client=cast(Mistral, client))
    schema = {"type": "object", "properties": {"age": {"type": "integer"}}}

    llm.generate_response("Prompt", json_schema=schema)

    completion_args = cast(dict, client.calls[0]["completion_args"])
    assert completion_args["response_format"] == {
        "type": "json_schema",
        "json_schema": {"name": "Response", "schema": schema, "strict": True},
    }


def test_reads_text_from_output_chunks() -> None:
    chunks = [SimpleNamespace(text='{"a": '), {"type": "text", "text": "1}"}]
    client = _DummyClient(response=_OutputsResponse(chunks))
    llm = MistralLLM(client=cast(Mistral, client))

    assert llm.generate_response("Prompt") == '{"a": 1}'


def test_reads_text_from_choices_shape() -> None:
    client = _DummyClient(response=_ChoicesResponse('{"b": 2}'))
    llm = MistralLLM(client=cast(Mistral, client))

    assert llm.generate_response("Prompt") == '{"b": 2}'


def test_raises_when_response_has_no_text() -> None:
    client = _DummyClient(response=_ChoicesResponse(None))
    llm = MistralLLM(client=cast(Mistral, client))

    with pytest.raises(LLMProviderError, match="not text"):
        llm.generate_response("Prompt")


def test_rate_limit_maps_to_quota_error() -> None:
    error = _QuotaExceededError("Too many requests")
    client = _DummyClient(error=error)
    llm = MistralLLM(client=cast(Mistral, client))

    with pytest.raises(LLMQuotaError, match="quota exhausted or rate limited") as excinfo:
        llm.generate_response("Prompt")

    assert excinfo.value.__cause__ is error


def test_other_sdk_errors_propagate_unchanged() -> None:
    client = _DummyClient(error=RuntimeError("bad gateway"))
    llm = MistralLLM(client=cast(Mistral, client))

    with pytest.raises(RuntimeError, match="bad gateway"):
        llm.generate_response("Prompt")


def test_api_key_is_passed_to_sdk_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MISTRAL_API_KEY", "env-test-key-123")
    captured: dict[str, object] = {}

    class FakeClient:
        def __init__(self, api_key: str | None = None, **kwargs: object) -> None:
            captured["api_key"] = api_key

    monkeypatch.setattr("typecast.llm.mistral_llm.Mistral", FakeClient)

    MistralLLM(system_prompt="test")

    assert captured.get("api_key") == "env-test-key-123"


def test_raises_when_api_key_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
    # Keep a developer .env from putting the key back
    monkeypatch.setattr(
        "typecast.llm.mistral_llm.load_dotenv", lambda *args, **kwargs: None
    )
    called = {"constructed": False}

    class FakeClientNoop:
        def __init__(self, api_key: str | None = None, **kwargs: object) -> None:
            called["constructed"] = True

    monkeypatch.setattr("typecast.llm.mistral_llm.Mistral", FakeClientNoop)

    with pytest.raises(
        LLMProviderConfigurationError,
        match="MISTRAL_API_KEY environment variable is required",
    ):
        MistralLLM(system_prompt="test")
    assert called["constructed"] is False


def test_system_prompt_accepts_direct_string() -> None:
    system_text = "This is a direct system prompt.\nWith multiple lines."

    llm = MistralLLM(system_prompt=system_text, client=cast(Mistral, _DummyClient()))

    assert llm.system_prompt == system_text


def test_loads_dotenv_when_path_provided(tmp_path: Path) -> None:
    dotenv_path = tmp_path / ".env"
    dotenv_path.write_text("MISTRAL_API_KEY=from-dotenv\n", encoding="utf-8")
    previous_value = os.environ.pop("MISTRAL_API_KEY", None)

    try:
        MistralLLM(client=cast(Mistral, _DummyClient()), dotenv_path=dotenv_path)
        assert os.environ["MISTRAL_API_KEY"] == "from-dotenv"
    finally:
        if previous_value is None:
            os.environ.pop("MISTRAL_API_KEY", None)
        else:
            os.environ["MISTRAL_API_KEY"] = previous_value


def test_satisfies_provider_protocol() -> None:
    llm = MistralLLM(client=cast(Mistral, _DummyClient()))

    assert isinstance(llm, LLMProvider)
    assert llm.name == "mistral"
