"""Shared JSON extraction and repair utilities for LLM responses.

This module fixes the common syntactic defects found in model output without
another round-trip to the backend:

1. Markdown code fences (```json ... ```) are stripped
2. Conversational "chatter" before and after the JSON value is trimmed
3. Trailing commas before ``]`` or ``}`` are removed

None of these helpers try to guess intended values. Text that is still broken
after repair is left for :func:`json.loads` to reject.
"""

from __future__ import annotations

import json
import re
from typing import Any

FENCE = "```"

# Opening fence with an optional ``json`` language tag (any case).
_OPENING_FENCE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
# Closing fence on its own line at the very end of the text.
_CLOSING_FENCE = re.compile(r"\n```\s*$")
_TRAILING_COMMA = re.compile(r",\s*([\]}])")

_QUOTES = ('"', "'")
_BRACKET_PAIRS = {"{": "}", "[": "]"}


def strip_markdown_fence(text: str) -> str:
    """Return the content of a fenced code block, or the trimmed text.

    Example:
        >>> strip_markdown_fence('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    stripped = text.strip()
    opening = _OPENING_FENCE.match(stripped)
    if opening is None:
        return stripped

    stripped = stripped[opening.end() :]
    closing = _CLOSING_FENCE.search(stripped)
    if closing is not None:
        stripped = stripped[: closing.start()]
    else:
        end = stripped.find(FENCE)
        if end != -1:
            stripped = stripped[:end]
    return stripped.strip()


def extract_json_chunk(text: str) -> str:
    """Return the first top-level JSON object or array found in ``text``.

    Scanning starts at whichever of ``{`` or ``[`` appears first. Brackets
    inside single- or double-quoted strings are ignored and a backslash
    escapes the next character while inside a string.

    If no opening bracket exists the trimmed text is returned unchanged. If
    the value is never closed (truncated output) everything from the opening
    bracket onwards is returned.
    """
    trimmed = text.strip()
    start_obj = trimmed.find("{")
    start_arr = trimmed.find("[")

    if start_obj == -1 and start_arr == -1:
        return trimmed

    if start_arr == -1 or (start_obj != -1 and start_obj < start_arr):
        start = start_obj
    else:
        start = start_arr
    open_char = trimmed[start]
    close_char = _BRACKET_PAIRS[open_char]

    depth = 0
    in_string = False
    escape = False
    quote_char = ""

    for index in range(start, len(trimmed)):
        char = trimmed[index]

        if escape:
            escape = False
            continue
        if in_string:
            if char == "\\":
                escape = True
            elif char == quote_char:
                in_string = False
            continue
        if char in _QUOTES:
            in_string = True
            quote_char = char
        elif char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return trimmed[start : index + 1]

    # Unbalanced; hand back the remainder so the parser reports the real error.
    return trimmed[start:]


def fix_trailing_commas(text: str) -> str:
    """Remove commas (and the whitespace after them) that precede ``]`` or ``}``.

    This is a plain textual substitution: a ``,]`` or ``,}`` sequence inside a
    string value is rewritten too.
    """
    return _TRAILING_COMMA.sub(r"\1", text)


def repair_json(text: str) -> str:
    """Run every local repair in order and return the resulting text.

    The output is not guaranteed to be valid JSON; pass it to
    :func:`json.loads` (or use :func:`parse_json_response`).
    """
    repaired = strip_markdown_fence(text)
    repaired = extract_json_chunk(repaired)
    repaired = fix_trailing_commas(repaired)
    return repaired.strip()


def parse_json_response(text: str) -> Any:
    """Repair and parse JSON content from LLM response text.

    Args:
        text: The response text from an LLM that should contain JSON

    Returns:
        The parsed JSON value (typically a dict or list)

    Raises:
        json.JSONDecodeError: If the repaired text still cannot be parsed

    Example:
        >>> text = "Here's the result: {\\"key\\": \\"value\\",} Thanks!"
        >>> parse_json_response(text)["key"]
        'value'
    """
    return json.loads(repair_json(text))
