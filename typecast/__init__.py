"""Contract-first structured output from text-completion backends."""

from __future__ import annotations

from .caster import TypeCast, cast, evaluate_response, format_failure
from .config import CastOptions
from .conversation import Conversation, Turn
from .errors import TypeCastError
from .llm.json_utils import (
    extract_json_chunk,
    fix_trailing_commas,
    parse_json_response,
    repair_json,
    strip_markdown_fence,
)
from .llm.provider import (
    LLMProvider,
    LLMProviderConfigurationError,
    LLMProviderError,
    LLMQuotaError,
)
from .models import AttemptFailure, FailureKind
from .validation import PydanticValidator, ValidationOutcome, Validator

__all__ = [
    "AttemptFailure",
    "CastOptions",
    "Conversation",
    "FailureKind",
    "LLMProvider",
    "LLMProviderConfigurationError",
    "LLMProviderError",
    "LLMQuotaError",
    "PydanticValidator",
    "Turn",
    "TypeCast",
    "TypeCastError",
    "ValidationOutcome",
    "Validator",
    "cast",
    "evaluate_response",
    "extract_json_chunk",
    "fix_trailing_commas",
    "format_failure",
    "parse_json_response",
    "repair_json",
    "strip_markdown_fence",
]
