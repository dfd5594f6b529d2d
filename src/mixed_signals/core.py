# core.py
"""The signal contract: ranges, evaluation context and the ``Signal`` base class."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, MutableSequence

import numpy as np

from .utils import RAW_DTYPE, clamp, finite_or, is_finite, to_u64


# =========================
# Ranges
# =========================


@dataclass(frozen=True, slots=True)
class SignalRange:
    """Declared ``[min, max]`` output range of a signal.

    Bounds are swapped when given in descending order; a non-finite bound
    replaces the whole range with the unit range.
    """

    min: float = 0.0
    max: float = 1.0

    def __post_init__(self) -> None:
        lo, hi = self.min, self.max
        if not (is_finite(lo) and is_finite(hi)):
            lo, hi = 0.0, 1.0
        elif lo > hi:
            lo, hi = hi, lo
        object.__setattr__(self, "min", float(lo))
        object.__setattr__(self, "max", float(hi))

    def remap_to(self, value: float, to: SignalRange) -> float:
        return remap_range(value, self, to)

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def clamp_value(self, value: float) -> float:
        return clamp(value, self.min, self.max)

    def center(self) -> float:
        return (self.min + self.max) * 0.5

    def width(self) -> float:
        return self.max - self.min


UNIT = SignalRange(0.0, 1.0)
BIPOLAR = SignalRange(-1.0, 1.0)
SignalRange.UNIT = UNIT
SignalRange.BIPOLAR = BIPOLAR


def remap_range(value: float, source: SignalRange, target: SignalRange) -> float:
    """Linearly map ``value`` from ``source`` onto ``target``.

    A zero-width source range maps everything to the centre of ``target``.
    """

    width = source.max - source.min
    if not is_finite(width) or abs(width) < 1.1920929e-07:
        return (target.min + target.max) * 0.5
    normalized = (value - source.min) / width
    return target.min + normalized * (target.max - target.min)


def unipolar_to_bipolar(value: float) -> float:
    return value * 2.0 - 1.0


def bipolar_to_unipolar(value: float) -> float:
    return (value + 1.0) * 0.5


# =========================
# Evaluation context
# =========================


class PhaseKind(Enum):
    START = "start"
    ACTIVE = "active"
    END = "end"
    DONE = "done"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class Phase:
    """Lifecycle marker carried by a :class:`SignalContext`."""

    kind: PhaseKind = PhaseKind.ACTIVE
    code: int = 0

    @classmethod
    def custom(cls, code: int) -> Phase:
        return cls(PhaseKind.CUSTOM, int(code) & 0xFF)


Phase.START = Phase(PhaseKind.START)
Phase.ACTIVE = Phase(PhaseKind.ACTIVE)
Phase.END = Phase(PhaseKind.END)
Phase.DONE = Phase(PhaseKind.DONE)


def _unit_or_none(value: float | None) -> float | None:
    if value is None:
        return None
    return clamp(finite_or(value, 0.0), 0.0, 1.0)


@dataclass(frozen=True, slots=True)
class SignalContext:
    """Optional evaluation state passed alongside the sample time.

    ``seed`` is added to every context-aware RNG key (0 means no context
    seed); ``frame`` is the secondary RNG input. Progress fields are clamped
    to ``[0, 1]`` and ``absolute_t`` is floored at zero.
    """

    frame: int = 0
    seed: int = 0
    width: int = 0
    height: int = 0
    phase: Phase | None = None
    phase_t: float | None = None
    loop_t: float | None = None
    absolute_t: float | None = None
    char_index: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "frame", to_u64(self.frame))
        object.__setattr__(self, "seed", to_u64(self.seed))
        object.__setattr__(self, "width", int(self.width) & 0xFFFF)
        object.__setattr__(self, "height", int(self.height) & 0xFFFF)
        object.__setattr__(self, "phase_t", _unit_or_none(self.phase_t))
        object.__setattr__(self, "loop_t", _unit_or_none(self.loop_t))
        if self.absolute_t is not None:
            object.__setattr__(self, "absolute_t", max(finite_or(self.absolute_t, 0.0), 0.0))
        if self.char_index is not None:
            object.__setattr__(self, "char_index", max(int(self.char_index), 0))

    @classmethod
    def new(cls, frame: int, seed: int) -> SignalContext:
        return cls(frame=frame, seed=seed)

    def with_dimensions(self, width: int, height: int) -> SignalContext:
        return replace(self, width=width, height=height)

    def with_char_index(self, char_index: int) -> SignalContext:
        return replace(self, char_index=char_index)

    @classmethod
    def for_phase(cls, phase: Phase, phase_t: float, frame: int) -> SignalContext:
        return cls(frame=frame, phase=phase, phase_t=phase_t)

    @classmethod
    def for_loop(cls, loop_t: float, frame: int) -> SignalContext:
        return cls(frame=frame, loop_t=loop_t)

    @classmethod
    def full(
        cls,
        phase: Phase,
        phase_t: float,
        loop_t: float,
        absolute_t: float,
        frame: int,
    ) -> SignalContext:
        return cls(
            frame=frame,
            phase=phase,
            phase_t=phase_t,
            loop_t=loop_t,
            absolute_t=absolute_t,
        )


# =========================
# Signal base class
# =========================


class Signal:
    """Base class for every node of a signal graph.

    Subclasses implement :meth:`sample`; context-aware nodes also override
    :meth:`sample_with_context`. Nodes must return a finite value for any
    input and must be safe to share between threads.
    """

    def output_range(self) -> SignalRange:
        return UNIT

    def sample(self, t: float) -> float:
        raise NotImplementedError

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self.sample(t)

    def sample_into(self, t_start: float, dt: float, out: MutableSequence[float]) -> None:
        """Fill ``out`` with samples at ``t_start + i * dt`` in index order."""

        for index in range(len(out)):
            out[index] = self.sample(t_start + index * dt)

    def sample_with_context_into(
        self,
        t_start: float,
        dt: float,
        ctx: SignalContext,
        out: MutableSequence[float],
    ) -> None:
        for index in range(len(out)):
            out[index] = self.sample_with_context(t_start + index * dt, ctx)

    def sample_vec(self, t_start: float, dt: float, count: int) -> np.ndarray:
        values = np.zeros(max(int(count), 0), dtype=RAW_DTYPE)
        self.sample_into(t_start, dt, values)
        return values

    # -------------------------
    # Combinators
    # -------------------------
    def add(self, other: Signal) -> Signal:
        from .composition import Add

        return Add(self, other)

    def multiply(self, other: Signal) -> Signal:
        from .composition import Multiply

        return Multiply(self, other)

    def scale(self, factor: float) -> Signal:
        from .composition import Multiply
        from .generators import Constant

        return Multiply(self, Constant(factor))

    def mix(self, other: Signal, blend: float) -> Signal:
        from .composition import Mix

        return Mix(self, other, blend)

    def map(self, fn: Callable[[float], float]) -> Map:
        return Map(self, fn)

    def invert(self) -> Signal:
        from .processing import Invert

        return Invert(self)

    def normalized(self) -> Signal:
        from .processing import Normalized

        return Normalized(self)

    def normalized_from(self, source: SignalRange) -> NormalizedFrom:
        return NormalizedFrom(self, source)


class Map(Signal):
    """Apply ``fn`` to every sample of ``signal`` (output is not clamped)."""

    def __init__(self, signal: Signal, fn: Callable[[float], float]) -> None:
        self.signal = signal
        self.fn = fn

    def sample(self, t: float) -> float:
        return self.fn(self.signal.sample(t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self.fn(self.signal.sample_with_context(t, ctx))


class NormalizedFrom(Signal):
    """Remap ``signal`` from an explicit source range to ``[0, 1]``."""

    def __init__(self, signal: Signal, source: SignalRange) -> None:
        self.signal = signal
        self.source = source

    def output_range(self) -> SignalRange:
        return UNIT

    def sample(self, t: float) -> float:
        return _to_unit(self.signal.sample(t), self.source)

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return _to_unit(self.signal.sample_with_context(t, ctx), self.source)


def _to_unit(value: float, source: SignalRange) -> float:
    return clamp(finite_or(remap_range(value, source, UNIT), 0.5), 0.0, 1.0)


class Fn1(Signal):
    """Wrap a plain ``f(t)`` callable; output is clamped to ``[0, 1]``."""

    def __init__(self, fn: Callable[[float], float]) -> None:
        self.fn = fn

    def sample(self, t: float) -> float:
        return clamp(finite_or(self.fn(t), 0.0), 0.0, 1.0)


class Fn2(Signal):
    """Wrap an ``f(t, ctx)`` callable; ``sample`` uses a default context."""

    def __init__(self, fn: Callable[[float, SignalContext], float]) -> None:
        self.fn = fn

    def sample(self, t: float) -> float:
        return self.sample_with_context(t, SignalContext())

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return clamp(finite_or(self.fn(t, ctx), 0.0), 0.0, 1.0)


def sanitize_time(t: float) -> float:
    """Replace a non-finite sample time with 0.0."""

    return finite_or(t, 0.0)


def fract(value: float) -> float:
    """Euclidean fractional part, always in ``[0, 1)``; 0.0 for non-finite input."""

    if not is_finite(value):
        return 0.0
    result = value - math.floor(value)
    return 0.0 if result >= 1.0 else result


__all__ = [
    "BIPOLAR",
    "Fn1",
    "Fn2",
    "Map",
    "NormalizedFrom",
    "Phase",
    "PhaseKind",
    "Signal",
    "SignalContext",
    "SignalRange",
    "UNIT",
    "bipolar_to_unipolar",
    "fract",
    "remap_range",
    "sanitize_time",
    "unipolar_to_bipolar",
]
