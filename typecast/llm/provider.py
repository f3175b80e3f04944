from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

ProviderReporter = Callable[[str, "ProviderStatus", "Exception | None"], None]


class ProviderStatus(str, Enum):
    """Status used when reporting the outcome of a provider call."""

    SUCCESS = "success"
    QUOTA = "quota"
    FAILURE = "failure"


class LLMProviderError(Exception):
    """Generic failure raised by an LLM provider."""


class LLMQuotaError(LLMProviderError):
    """Raised when a provider reports quota or rate-limit exhaustion."""


class LLMProviderConfigurationError(LLMProviderError):
    """Raised when a provider cannot be configured or authenticated."""


@runtime_checkable
class LLMProvider(Protocol):
    """Shared contract for text-completion backends.

    ``generate_response`` receives the fully rendered prompt and returns the
    raw model text. ``json_schema`` is a JSON-Schema description of the
    expected output that backends with constrained decoding may use; others
    are free to ignore it. Any failure (network, auth, model) is raised and
    reaches the caller of :meth:`typecast.TypeCast.cast` unchanged.
    """

    name: str

    def generate_response(
        self,
        prompt: str,
        *,
        json_schema: dict[str, Any] | None = None,
    ) -> str:
        """Produce a single raw text response for ``prompt``."""
        ...

    def health_check(self) -> bool:
        """Optional quick check that returns True when the provider is ready."""
        ...


class ProviderFactory(Protocol):
    def __call__(
        self,
        *,
        system_prompt: str | Path | None,
        dotenv_path: str | Path | None,
    ) -> LLMProvider: ...


def load_system_prompt(system_prompt: str | Path | None) -> str | None:
    """Accept either a direct prompt string or a path to a prompt file."""

    if system_prompt is None:
        return None
    if not isinstance(system_prompt, (str, Path)):
        raise TypeError(
            f"system_prompt must be str or Path, got {type(system_prompt)}"
        )
    # Only short single-line strings are worth probing as paths
    if isinstance(system_prompt, Path) or (
        "\n" not in system_prompt and len(system_prompt) < 500
    ):
        try:
            prompt_path = Path(system_prompt)
            if prompt_path.exists() and prompt_path.is_file():
                return prompt_path.read_text(encoding="utf-8")
        except (OSError, ValueError):
            pass
    return str(system_prompt)
