"""Tagged failure records produced by the decode and validate steps."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .enums import FailureKind


@dataclass(frozen=True)
class AttemptFailure:
    """Why one attempt did not yield a valid value.

    Attributes:
        kind: Which step failed
        message: Short description (the decoder message for syntax failures)
        raw_response: The backend text that produced the failure, when available
        issues: Ordered validation issues (``loc``/``msg``/``type`` entries)
        cause: The underlying exception, kept for the terminal error's cause chain
    """

    kind: FailureKind
    message: str = ""
    raw_response: str | None = None
    issues: tuple[dict[str, Any], ...] = ()
    cause: BaseException | None = field(default=None, compare=False)

    @classmethod
    def syntax(
        cls, exc: json.JSONDecodeError | RecursionError, raw_response: str | None
    ) -> "AttemptFailure":
        return cls(
            kind=FailureKind.SYNTAX,
            message=str(exc),
            raw_response=raw_response,
            cause=exc,
        )

    @classmethod
    def validation(
        cls,
        issues: tuple[dict[str, Any], ...],
        raw_response: str | None,
        cause: BaseException | None = None,
    ) -> "AttemptFailure":
        return cls(
            kind=FailureKind.VALIDATION,
            message=f"{len(issues)} validation issue(s)",
            raw_response=raw_response,
            issues=tuple(issues),
            cause=cause,
        )

    @classmethod
    def backend(cls, exc: BaseException) -> "AttemptFailure":
        return cls(kind=FailureKind.BACKEND, message=str(exc), cause=exc)

    def issue_fields(self) -> list[str]:
        """Return the dotted location of every validation issue."""

        return [
            ".".join(str(part) for part in issue.get("loc", ())) for issue in self.issues
        ]
