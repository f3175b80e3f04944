from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from .gemini_llm import GeminiLLM
from .mistral_llm import MistralLLM
from .provider import LLMProvider, ProviderFactory

DEFAULT_PROVIDER = "gemini"


def _gemini_factory(
    *,
    system_prompt: str | Path | None,
    dotenv_path: str | Path | None,
) -> LLMProvider:
    return GeminiLLM(system_prompt=system_prompt, dotenv_path=dotenv_path)


def _mistral_factory(
    *,
    system_prompt: str | Path | None,
    dotenv_path: str | Path | None,
) -> LLMProvider:
    return MistralLLM(system_prompt=system_prompt, dotenv_path=dotenv_path)


_PROVIDER_FACTORIES: dict[str, ProviderFactory] = {
    "gemini": _gemini_factory,
    "mistral": _mistral_factory,
}


def available_providers() -> list[str]:
    """Return the registered provider names."""

    return list(_PROVIDER_FACTORIES.keys())


def create_provider(
    name: str | None = None,
    *,
    system_prompt: str | Path | None = None,
    dotenv_path: str | Path | None = None,
) -> LLMProvider:
    """Return a configured provider honoring the LLM_PRIMARY environment hint."""

    # Load an explicit .env before reading LLM_PRIMARY so it can pick the backend
    if dotenv_path is not None:
        load_dotenv(dotenv_path=str(dotenv_path), override=True)

    chosen = (name or os.environ.get("LLM_PRIMARY") or DEFAULT_PROVIDER).strip().lower()
    if chosen not in _PROVIDER_FACTORIES:
        raise ValueError(f"Unknown LLM provider '{chosen}'")

    return _PROVIDER_FACTORIES[chosen](
        system_prompt=system_prompt,
        dotenv_path=dotenv_path,
    )
