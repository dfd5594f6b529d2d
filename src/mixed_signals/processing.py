# processing.py
"""Stateless single-input operators: abs, invert, clamp, remap, quantize, normalize."""

from __future__ import annotations

import math

from .core import (
    BIPOLAR,
    UNIT,
    NormalizedFrom,
    Signal,
    SignalContext,
    SignalRange,
    bipolar_to_unipolar,
    remap_range,
    unipolar_to_bipolar,
)
from .utils import clamp, finite_or, is_finite


class _Unary(Signal):
    def __init__(self, signal: Signal) -> None:
        self.signal = signal

    def apply(self, value: float) -> float:
        raise NotImplementedError

    def sample(self, t: float) -> float:
        return self.apply(self.signal.sample(t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self.apply(self.signal.sample_with_context(t, ctx))


class Abs(_Unary):
    def output_range(self) -> SignalRange:
        r = self.signal.output_range()
        abs_min, abs_max = abs(r.min), abs(r.max)
        if r.min <= 0.0 <= r.max:
            return SignalRange(0.0, max(abs_min, abs_max))
        return SignalRange(min(abs_min, abs_max), max(abs_min, abs_max))

    def apply(self, value: float) -> float:
        return abs(value)


class Invert(_Unary):
    def output_range(self) -> SignalRange:
        r = self.signal.output_range()
        return SignalRange(-r.max, -r.min)

    def apply(self, value: float) -> float:
        return -value


class Clamp(_Unary):
    """Clamp to ``[min, max]``; reversed bounds swap, non-finite bounds mean ``[0, 1]``."""

    def __init__(self, signal: Signal, min: float = 0.0, max: float = 1.0) -> None:
        super().__init__(signal)
        bounds = SignalRange(min, max)
        self.min = bounds.min
        self.max = bounds.max

    @classmethod
    def unit(cls, signal: Signal) -> Clamp:
        return cls(signal, 0.0, 1.0)

    @classmethod
    def normalized(cls, signal: Signal) -> Clamp:
        return cls(signal, -1.0, 1.0)

    def output_range(self) -> SignalRange:
        return SignalRange(self.min, self.max)

    def apply(self, value: float) -> float:
        return clamp(finite_or(value, self.min), self.min, self.max)


class Remap(_Unary):
    """Linear map from ``[in_min, in_max]`` to ``[out_min, out_max]``.

    A degenerate input interval returns ``out_min``; any non-finite bound
    passes the value through unchanged.
    """

    DEGENERATE_WIDTH = 0.0001

    def __init__(
        self,
        signal: Signal,
        in_min: float = 0.0,
        in_max: float = 1.0,
        out_min: float = 0.0,
        out_max: float = 1.0,
    ) -> None:
        super().__init__(signal)
        self.in_min = in_min
        self.in_max = in_max
        self.out_min = out_min
        self.out_max = out_max

    @classmethod
    def to_unit(cls, signal: Signal) -> Remap:
        return cls(signal, -1.0, 1.0, 0.0, 1.0)

    @classmethod
    def to_bipolar(cls, signal: Signal) -> Remap:
        return cls(signal, 0.0, 1.0, -1.0, 1.0)

    def output_range(self) -> SignalRange:
        return SignalRange(self.out_min, self.out_max)

    def apply(self, value: float) -> float:
        bounds = (self.in_min, self.in_max, self.out_min, self.out_max)
        if not all(is_finite(bound) for bound in bounds):
            return value
        in_width = self.in_max - self.in_min
        if abs(in_width) < self.DEGENERATE_WIDTH:
            return self.out_min
        normalized = (value - self.in_min) / in_width
        return self.out_min + normalized * (self.out_max - self.out_min)


def quantize_in_range(value: float, source: SignalRange, levels: int) -> float:
    """Snap ``value`` down to one of ``levels`` evenly spaced steps across ``source``."""

    span = source.max - source.min
    if span == 0.0 or levels < 2 or not is_finite(value):
        return value
    step = 1.0 / (levels - 1)
    normalized = (value - source.min) / span
    if not is_finite(normalized / step):
        return value
    snapped = source.min + math.floor(normalized / step) * step * span
    return snapped if is_finite(snapped) else value


class Quantize(Signal):
    """Discretise a signal to ``levels`` steps inside its declared range (``levels >= 2``)."""

    def __init__(self, signal: Signal, levels: int = 4) -> None:
        self.signal = signal
        self.levels = max(int(levels), 2)

    def output_range(self) -> SignalRange:
        return self.signal.output_range()

    def sample(self, t: float) -> float:
        return quantize_in_range(self.signal.sample(t), self.signal.output_range(), self.levels)

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        value = self.signal.sample_with_context(t, ctx)
        return quantize_in_range(value, self.signal.output_range(), self.levels)


class Normalized(Signal):
    """Map a signal's declared output range onto ``[0, 1]`` and clamp."""

    def __init__(self, signal: Signal) -> None:
        self.signal = signal

    def output_range(self) -> SignalRange:
        return UNIT

    def _apply(self, value: float) -> float:
        unit = remap_range(value, self.signal.output_range(), UNIT)
        return clamp(finite_or(unit, 0.5), 0.0, 1.0)

    def sample(self, t: float) -> float:
        return self._apply(self.signal.sample(t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._apply(self.signal.sample_with_context(t, ctx))


__all__ = [
    "Abs",
    "BIPOLAR",
    "Clamp",
    "Invert",
    "Normalized",
    "NormalizedFrom",
    "Quantize",
    "Remap",
    "UNIT",
    "bipolar_to_unipolar",
    "quantize_in_range",
    "remap_range",
    "unipolar_to_bipolar",
]
