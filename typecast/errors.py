from __future__ import annotations

from .conversation import Conversation
from .models import AttemptFailure, FailureKind

_TRUNCATE_AT = 2000


class TypeCastError(Exception):
    """Raised when every attempt of a cast failed to produce a valid value.

    The error is raised ``from`` the last attempt's underlying exception, so
    ``__cause__`` is the :class:`json.JSONDecodeError` or
    :class:`pydantic.ValidationError` that ended the loop. The last failure
    record and the full conversation are kept to aid debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        failure: AttemptFailure,
        conversation: Conversation | None = None,
    ) -> None:
        super().__init__(message)
        self.failure = failure
        self.conversation = conversation

    @property
    def kind(self) -> FailureKind:
        return self.failure.kind

    @property
    def cause(self) -> BaseException | None:
        return self.failure.cause

    @property
    def response_text(self) -> str | None:
        return self.failure.raw_response

    @property
    def attempts(self) -> int:
        return self.conversation.attempts if self.conversation is not None else 1

    @property
    def prompts(self) -> list[str]:
        if self.conversation is None:
            return []
        return [turn.sent_prompt for turn in self.conversation.turns]

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.response_text is not None:
            parts.append(f"\n--- LLM Response ---\n{_truncate(self.response_text)}")
        if self.prompts:
            parts.append(f"\n--- Last Prompt ---\n{_truncate(self.prompts[-1])}")
        return "".join(parts)


def _truncate(text: str) -> str:
    # Truncate very long text for readability
    if len(text) > _TRUNCATE_AT:
        return text[:_TRUNCATE_AT] + "... [truncated]"
    return text
