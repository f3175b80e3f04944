"""Backend adapters and local JSON repair helpers."""

from __future__ import annotations

from .json_utils import (
    extract_json_chunk,
    fix_trailing_commas,
    parse_json_response,
    repair_json,
    strip_markdown_fence,
)
from .provider import (
    LLMProvider,
    LLMProviderConfigurationError,
    LLMProviderError,
    LLMQuotaError,
    ProviderReporter,
    ProviderStatus,
)

__all__ = [
    "LLMProvider",
    "LLMProviderConfigurationError",
    "LLMProviderError",
    "LLMQuotaError",
    "ProviderReporter",
    "ProviderStatus",
    "extract_json_chunk",
    "fix_trailing_commas",
    "parse_json_response",
    "repair_json",
    "strip_markdown_fence",
]
