"""
Error types raised while turning a declarative description into a signal graph.

Error hierarchy:
    MixedSignalsError (base)
    ├── SignalBuildError   (a node rejected its distribution parameters)
    └── SpecError          (malformed declarative input; also a ValueError)

Sampling never raises: non-finite inputs are sanitised in place.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class MixedSignalsError(Exception):
    """Base error for every failure reported by the package."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class BuildErrorKind(Enum):
    """Node family whose constructor rejected its parameters."""

    GAUSSIAN = "GaussianNoise"
    POISSON = "PoissonNoise"
    CORRELATED = "CorrelatedNoise"
    STUDENT_T = "StudentTNoise"


class SignalBuildError(MixedSignalsError):
    """
    Raised by ``SignalSpec.build`` when a node constructor fails.

    The original ``ValueError`` is chained as ``__cause__``.
    """

    def __init__(
        self,
        kind: BuildErrorKind,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.kind = kind

    def __str__(self) -> str:
        return f"{self.kind.value} build failed: {self.message}"


class SpecError(MixedSignalsError, ValueError):
    """
    Raised for declarative input that cannot describe a node.

    Examples:
    - Unknown or missing ``type``
    - A composite node without one of its children
    - A keyframe entry that is not a ``(time, value)`` pair
    """

    def __init__(
        self,
        message: str,
        signal_type: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.signal_type = signal_type


__all__ = ["BuildErrorKind", "MixedSignalsError", "SignalBuildError", "SpecError"]
