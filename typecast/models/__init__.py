"""Public model exports for the project.

Keep the :mod:`typecast` namespace clean; tests and other modules should import
``from typecast.models import AttemptFailure, FailureKind``.
"""

from __future__ import annotations

from .enums import FailureKind
from .failure import AttemptFailure

__all__ = ["AttemptFailure", "FailureKind"]
