from __future__ import annotations

import os
from pathlib import Path
from typing import Any, cast

from dotenv import load_dotenv
from mistralai import Mistral, models

# NOTE: We intentionally avoid marshalled SDK message classes for the response
# and read the `outputs`/`choices` shapes directly.
from .provider import (
    LLMProvider,
    LLMProviderConfigurationError,
    LLMProviderError,
    LLMQuotaError,
    load_system_prompt,
)


class MistralLLM(LLMProvider):
    """Wrapper around the Mistral SDK returning raw response text.

    The system prompt can be provided either as a string directly or as a Path to a file.
    A JSON schema hint is forwarded as a strict ``json_schema`` response format.
    """

    name = "mistral"
    MODEL = "mistral-medium-latest"
    SCHEMA_NAME = "Response"

    def __init__(
        self,
        system_prompt: str | Path | None = None,
        *,
        client: Mistral | None = None,
        dotenv_path: str | Path | None = None,
        model: str | None = None,
        temperature: float = 0.2,
    ) -> None:
        self._system_prompt = load_system_prompt(system_prompt)

        if dotenv_path is not None:
            # Load the provided dotenv file but do not override existing
            # environment variables; explicit environment values take precedence.
            load_dotenv(dotenv_path=Path(dotenv_path))
        else:
            load_dotenv()

        # Mistral SDK does not automatically read MISTRAL_API_KEY from environment
        if client is None:
            api_key = os.environ.get("MISTRAL_API_KEY")
            if not api_key:
                raise LLMProviderConfigurationError(
                    "MISTRAL_API_KEY environment variable is required but not set. "
                    "Please set it in your .env file or environment."
                )
            self._client = Mistral(api_key=api_key)
        else:
            self._client = client

        self._model = model or self.MODEL
        self._temperature = temperature

    @property
    def system_prompt(self) -> str | None:
        return self._system_prompt

    @property
    def model(self) -> str:
        return self._model

    def generate_response(
        self,
        prompt: str,
        *,
        json_schema: dict[str, Any] | None = None,
    ) -> str:
        if not prompt:
            raise ValueError("prompt must not be empty.")

        inputs = cast(
            models.ConversationInputs,
            [models.MessageInputEntry(role="user", content=prompt)],
        )
        request: dict[str, Any] = {
            "inputs": inputs,
            "model": self._model,
            "completion_args": self._completion_args(json_schema),
            "tools": [],
        }
        if self._system_prompt is not None:
            request["instructions"] = self._system_prompt

        try:
            response = self._client.beta.conversations.start(**request)
        except Exception as exc:
            # Translate Mistral SDK quota/rate-limit exceptions so callers can
            # tell them apart from other transport failures.
            if self._is_quota_error(exc):
                raise LLMQuotaError(
                    "Mistral provider: quota exhausted or rate limited"
                ) from exc
            raise

        return self._response_text(response)

    def health_check(self) -> bool:
        return True

    def _completion_args(self, json_schema: dict[str, Any] | None) -> dict[str, Any]:
        completion_args: dict[str, Any] = {"temperature": self._temperature}
        if json_schema is not None:
            completion_args["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": self.SCHEMA_NAME,
                    "schema": json_schema,
                    "strict": True,
                },
            }
        return completion_args

    @staticmethod
    def _response_text(response: Any) -> str:
        """Read the model text from a Mistral response.

        Two shapes are supported, in precedence order:
        1. ``response.outputs`` -> entries whose ``content`` is a string or a
           list of text chunks (``beta.conversations.start``)
        2. ``response.choices[0].message.content`` -> chat-completion style
        """
        outputs = getattr(response, "outputs", None)
        if isinstance(outputs, list):
            for entry in outputs:
                if isinstance(entry, dict):
                    content = entry.get("content")
                else:
                    content = getattr(entry, "content", None)
                text = _content_text(content)
                if text is not None and text.strip():
                    return text

        choices = getattr(response, "choices", None)
        if choices:
            message = getattr(choices[0], "message", None)
            text = _content_text(getattr(message, "content", None))
            if text is not None:
                return text

        raise LLMProviderError(
            "Mistral response content is not text; expected `outputs` or `choices` shapes."
        )

    @staticmethod
    def _is_quota_error(exc: Exception) -> bool:
        return getattr(exc, "status_code", None) == 429


def _content_text(content: Any) -> str | None:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for chunk in content:
            if isinstance(chunk, dict):
                value = chunk.get("text")
            else:
                value = getattr(chunk, "text", None)
            if isinstance(value, str):
                parts.append(value)
        if parts:
            return "".join(parts)
    return None
