"""Enumerations shared by the cast loop and its failure records."""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Classification of a single failed attempt.

    Values:
        SYNTAX: The repaired response text could not be decoded as JSON
        VALIDATION: The decoded value did not match the schema
        BACKEND: The backend itself failed (never retried)
    """

    SYNTAX = "syntax"
    VALIDATION = "validation"
    BACKEND = "backend"

    @classmethod
    def all_values(cls) -> list[str]:
        return [m.value for m in cls]
