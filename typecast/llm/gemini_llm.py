from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

try:
    from google.api_core import exceptions as google_exceptions
except (
    Exception
):  # pragma: no cover - only occurs in environments without google-api-core
    google_exceptions = None

from .provider import LLMProviderError, LLMQuotaError, load_system_prompt


class GeminiLLM:
    """Wrapper around the Gemini SDK returning raw response text.

    The system prompt can be provided either as a string directly or as a Path to a file.
    When a JSON schema hint is supplied the request asks Gemini for
    ``application/json`` output constrained to that schema.
    """

    name = "gemini"
    MODEL = "gemini-2.5-flash"
    MAX_THINKING_BUDGET = 24576

    def __init__(
        self,
        system_prompt: str | Path | None = None,
        *,
        client: genai.Client | None = None,
        dotenv_path: str | Path | None = None,
        model: str | None = None,
        temperature: float = 0.2,
        min_request_interval: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._system_prompt = load_system_prompt(system_prompt)

        if dotenv_path is not None:
            load_dotenv(dotenv_path=Path(dotenv_path))
        else:
            load_dotenv()
        self._client = client or genai.Client()
        self._model = model or self.MODEL
        self._temperature = temperature

        # Read rate limiting configuration from environment or parameters
        if min_request_interval is None:
            try:
                min_request_interval = float(
                    os.environ.get("GEMINI_MIN_REQUEST_INTERVAL", "0")
                )
            except ValueError:
                min_request_interval = 0.0
        self._min_request_interval = max(0.0, min_request_interval)

        # Retries here only cover HTTP 429 from the transport
        if max_retries is None:
            try:
                max_retries = int(os.environ.get("GEMINI_MAX_RETRIES", "0"))
            except ValueError:
                max_retries = 0
        self._max_retries = max(0, max_retries)

        # Initialise to 0 so the first request is not rate limited
        self._last_request_time = 0.0

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

        config = self._build_config(json_schema)

        for attempt in range(self._max_retries + 1):
            self._enforce_rate_limit()

            try:
                response = self._client.models.generate_content(
                    model=self._model,
                    contents=prompt,
                    config=config,
                )
            except Exception as exc:
                self._last_request_time = time.time()

                # TooManyRequests (429) is retryable
                is_rate_limit = (
                    isinstance(exc, genai_errors.APIError)
                    and getattr(exc, "code", None) == 429
                ) or (
                    google_exceptions is not None
                    and isinstance(
                        exc, getattr(google_exceptions, "TooManyRequests", ())
                    )
                )
                # ResourceExhausted is permanent
                is_quota_exhausted = google_exceptions is not None and isinstance(
                    exc, getattr(google_exceptions, "ResourceExhausted", ())
                )

                if is_quota_exhausted:
                    raise LLMQuotaError("Gemini provider: quota exhausted") from exc

                if is_rate_limit:
                    if attempt < self._max_retries:
                        time.sleep(self._backoff_delay(attempt))
                        continue
                    raise LLMQuotaError(
                        "Gemini provider: rate limited (exhausted retries)"
                    ) from exc

                raise

            self._last_request_time = time.time()
            return self._response_text(response)

        # range() always runs at least once; every branch above returns or raises
        raise AssertionError("unreachable")  # pragma: no cover

    def health_check(self) -> bool:
        return True

    def _build_config(
        self, json_schema: dict[str, Any] | None
    ) -> types.GenerateContentConfig:
        config_kwargs: dict[str, Any] = dict(
            thinking_config=types.ThinkingConfig(
                thinking_budget=self.MAX_THINKING_BUDGET
            ),
            temperature=self._temperature,
        )
        if self._system_prompt is not None:
            config_kwargs["system_instruction"] = self._system_prompt
        if json_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_json_schema"] = json_schema
        return types.GenerateContentConfig(**config_kwargs)

    def _backoff_delay(self, attempt: int) -> float:
        # Backoff: min_interval * 2^attempt, with a small base when unset
        multiplier = 2**attempt
        if self._min_request_interval == 0:
            return 0.1 * multiplier
        return self._min_request_interval * multiplier

    @staticmethod
    def _response_text(response: Any) -> str:
        text = getattr(response, "text", None)
        if not isinstance(text, str):
            raise LLMProviderError(
                "Gemini response does not expose a text attribute."
            )
        return text

    def _enforce_rate_limit(self) -> None:
        """Enforce minimum interval between API requests."""
        if self._min_request_interval <= 0:
            return

        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
