"""Call-local conversation state for the cast loop.

A :class:`Conversation` starts from the caller's prompt and grows by one
:class:`Turn` per failed attempt. Both are immutable: ``extend`` returns a new
conversation. The flattened prompt text is only built by :meth:`render`, right
before it is sent to the backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .models import AttemptFailure

CORRECTION_INSTRUCTION = (
    "Fix the JSON according to the schema and return only the corrected JSON."
)


@dataclass(frozen=True)
class Turn:
    """One backend round-trip that did not produce a valid value."""

    sent_prompt: str
    raw_response: str | None
    failure: AttemptFailure


@dataclass(frozen=True)
class Conversation:
    prompt: str
    turns: tuple[Turn, ...] = ()

    @property
    def attempts(self) -> int:
        return len(self.turns)

    @property
    def last_turn(self) -> Turn | None:
        return self.turns[-1] if self.turns else None

    def extend(self, turn: Turn) -> "Conversation":
        return Conversation(prompt=self.prompt, turns=self.turns + (turn,))

    def render(self, describe: Callable[[AttemptFailure], str]) -> str:
        """Flatten the conversation into the text sent to the backend.

        ``describe`` formats each failure for its corrective block.
        """
        blocks = [self.prompt]
        blocks.extend(corrective_block(turn, describe(turn.failure)) for turn in self.turns)
        return "".join(blocks)


def corrective_block(turn: Turn, description: str) -> str:
    """Return the text appended to the prompt after a failed attempt."""

    raw = turn.raw_response if turn.raw_response is not None else ""
    return (
        "\n\n---\nYour previous response:\n"
        f"{raw}"
        "\n\n---\nError: "
        f"{description}"
        f"\n\n{CORRECTION_INSTRUCTION}"
    )
