from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_MAX_RETRIES = 2
MAX_RETRIES_ENV = "TYPECAST_MAX_RETRIES"


@dataclass(frozen=True)
class CastOptions:
    """Settings for a single :meth:`typecast.TypeCast.cast` call.

    ``max_retries`` counts corrective retries after the first attempt, so the
    backend is called at most ``max_retries + 1`` times.
    """

    max_retries: int = DEFAULT_MAX_RETRIES

    def __post_init__(self) -> None:
        # bool is an int subclass; reject it explicitly
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise TypeError(
                f"max_retries must be an int, got {type(self.max_retries).__name__}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> "CastOptions":
        """Build options from ``TYPECAST_MAX_RETRIES``, loading ``.env`` first."""

        if dotenv_path is not None:
            load_dotenv(dotenv_path=Path(dotenv_path))
        else:
            load_dotenv()
        return cls(max_retries=_read_int_env(MAX_RETRIES_ENV, default=DEFAULT_MAX_RETRIES))


def _read_int_env(var_name: str, *, default: int) -> int:
    raw = os.environ.get(var_name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    if value < 0:
        return default
    return value
