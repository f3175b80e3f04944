"""Cast free-form backend output into schema-conforming values.

Each attempt sends the rendered conversation to the backend, repairs and
decodes the raw text, and validates the decoded value. Syntax and validation
failures are fed back to the backend as a corrective block, up to
``max_retries`` times. Backend exceptions are never retried.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from .config import CastOptions
from .conversation import Conversation, Turn
from .errors import TypeCastError
from .llm.json_utils import repair_json
from .llm.provider import (
    LLMProvider,
    LLMProviderError,
    LLMQuotaError,
    ProviderReporter,
    ProviderStatus,
)
from .models import AttemptFailure, FailureKind
from .validation import Validator, as_validator

logger = logging.getLogger(__name__)

T = TypeVar("T")

VALIDATION_FAILED = "Zod validation failed:\n"
INVALID_JSON = "Invalid JSON: "


@dataclass(frozen=True)
class AttemptResult(Generic[T]):
    """Outcome of decoding and validating one raw response."""

    value: T | None = None
    failure: AttemptFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def format_failure(failure: AttemptFailure) -> str:
    """Return the human-readable description embedded in corrective prompts."""

    if failure.kind is FailureKind.VALIDATION:
        issues = json.dumps(list(failure.issues), indent=2, default=str)
        return f"{VALIDATION_FAILED}{issues}"
    if failure.kind is FailureKind.SYNTAX:
        return f"{INVALID_JSON}{failure.message}"
    if failure.message:
        return failure.message
    return str(failure.cause) if failure.cause is not None else failure.kind.value


def evaluate_response(raw: str, validator: Validator[T]) -> AttemptResult[T]:
    """Repair, decode and validate a raw backend response."""

    # Pathologically deep nesting makes the decoder hit the recursion limit
    try:
        decoded = json.loads(repair_json(raw))
    except (json.JSONDecodeError, RecursionError) as exc:
        return AttemptResult(failure=AttemptFailure.syntax(exc, raw))

    outcome = validator.parse(decoded)
    if not outcome.ok:
        return AttemptResult(
            failure=AttemptFailure.validation(outcome.issues, raw, cause=outcome.error)
        )
    return AttemptResult(value=outcome.value)


class TypeCast:
    """Contract-first structured output from any :class:`LLMProvider`.

    Example:
        >>> caster = TypeCast(GeminiLLM())
        >>> user = caster.cast(User, "Return a user as JSON.")
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        options: CastOptions | None = None,
        reporter: ProviderReporter | None = None,
    ) -> None:
        self._provider = provider
        self._options = options or CastOptions()
        self._reporter = reporter

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    @property
    def options(self) -> CastOptions:
        return self._options

    def cast(
        self,
        schema: Any,
        prompt: str,
        options: CastOptions | None = None,
        *,
        max_retries: int | None = None,
    ) -> Any:
        """Send ``prompt`` and return the response validated against ``schema``.

        Args:
            schema: A :class:`Validator`, or anything :class:`pydantic.TypeAdapter`
                accepts (e.g. a ``BaseModel`` subclass)
            prompt: The prompt sent on the first attempt
            options: Per-call settings; defaults to the instance options
            max_retries: Shortcut overriding ``options.max_retries``

        Returns:
            The validated value.

        Raises:
            TypeCastError: If every attempt failed to decode or validate
            Exception: Whatever the provider raised, unchanged
        """
        settings = self._resolve_options(options, max_retries)
        validator = as_validator(schema)
        json_schema = validator.json_schema()
        conversation = Conversation(prompt=prompt)

        for attempt in range(settings.max_attempts):
            text = conversation.render(format_failure)
            logger.debug(
                "Cast attempt %d/%d via %s",
                attempt + 1,
                settings.max_attempts,
                self._provider_name,
            )
            raw = self._call_provider(text, json_schema)
            result = evaluate_response(raw, validator)
            if result.ok:
                if attempt:
                    logger.info("Cast succeeded after %d retry(ies)", attempt)
                return result.value

            failure = result.failure
            assert failure is not None
            conversation = conversation.extend(
                Turn(sent_prompt=text, raw_response=raw, failure=failure)
            )
            if attempt < settings.max_retries:
                logger.warning(
                    "Attempt %d/%d failed (%s); retrying with corrective prompt",
                    attempt + 1,
                    settings.max_attempts,
                    failure.kind.value,
                )

        last = conversation.last_turn
        assert last is not None
        logger.error(
            "Cast failed after %d attempt(s); last failure: %s",
            conversation.attempts,
            last.failure.kind.value,
        )
        raise TypeCastError(
            f"TypeCast: {self._provider_name} did not return output matching "
            f"{_schema_name(validator)} after {conversation.attempts} attempt(s) "
            f"(last failure: {last.failure.kind.value})",
            failure=last.failure,
            conversation=conversation,
        ) from last.failure.cause

    def _resolve_options(
        self, options: CastOptions | None, max_retries: int | None
    ) -> CastOptions:
        settings = options or self._options
        if max_retries is not None:
            settings = replace(settings, max_retries=max_retries)
        return settings

    def _call_provider(self, text: str, json_schema: dict[str, Any] | None) -> str:
        name = self._provider_name
        try:
            raw = self._provider.generate_response(text, json_schema=json_schema)
        except Exception as exc:
            failure = AttemptFailure.backend(exc)
            logger.exception("Backend %s failed: %s", name, format_failure(failure))
            status = (
                ProviderStatus.QUOTA
                if isinstance(exc, LLMQuotaError)
                else ProviderStatus.FAILURE
            )
            self._report(name, status, exc)
            raise

        if not isinstance(raw, str):
            exc = LLMProviderError(
                f"Provider {name} returned {type(raw).__name__} instead of text"
            )
            self._report(name, ProviderStatus.FAILURE, exc)
            raise exc
        self._report(name, ProviderStatus.SUCCESS)
        return raw

    @property
    def _provider_name(self) -> str:
        return getattr(self._provider, "name", type(self._provider).__name__)

    def _report(
        self,
        provider_name: str,
        status: ProviderStatus,
        error: Exception | None = None,
    ) -> None:
        if self._reporter is None:
            return
        self._reporter(provider_name, status, error)


def cast(
    provider: LLMProvider,
    schema: Any,
    prompt: str,
    options: CastOptions | None = None,
    *,
    max_retries: int | None = None,
) -> Any:
    """Convenience wrapper around :meth:`TypeCast.cast`."""

    return TypeCast(provider).cast(schema, prompt, options, max_retries=max_retries)


def _schema_name(validator: Validator[Any]) -> str:
    return getattr(validator, "name", None) or type(validator).__name__
