# generators.py
"""Leaf generators: oscillators, utility shapes, keyframes and phase nodes."""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .core import BIPOLAR, Signal, SignalContext, SignalRange, fract, sanitize_time
from .noise_helpers import bipolar_range
from .utils import TAU, finite_or, finite_or_clamp, is_finite

# =========================
# Periodic oscillators
# =========================
#
# output(t) = offset + amplitude * shape(fract(frequency * t + phase))


class _Oscillator(Signal):
    def __init__(
        self,
        frequency: float = 1.0,
        amplitude: float = 1.0,
        offset: float = 0.0,
        phase: float = 0.0,
    ) -> None:
        self.frequency = frequency
        self.amplitude = amplitude
        self.offset = offset
        self.phase = phase

    @classmethod
    def with_frequency(cls, frequency: float):
        return cls(frequency)

    def shape(self, u: float) -> float:
        raise NotImplementedError

    def output_range(self) -> SignalRange:
        return bipolar_range(self.amplitude, self.offset)

    def cycle_position(self, t: float) -> float:
        frequency = finite_or(self.frequency, 1.0)
        phase = finite_or(self.phase, 0.0)
        return fract(frequency * sanitize_time(t) + phase)

    def sample(self, t: float) -> float:
        amplitude = finite_or(self.amplitude, 1.0)
        offset = finite_or(self.offset, 0.0)
        return offset + amplitude * self.shape(self.cycle_position(t))


class Sine(_Oscillator):
    def shape(self, u: float) -> float:
        return math.sin(TAU * u)


class Triangle(_Oscillator):
    def shape(self, u: float) -> float:
        if u < 0.5:
            return 4.0 * u - 1.0
        return 3.0 - 4.0 * u


class Square(_Oscillator):
    """Pulse-width oscillator: +1 while the cycle position is below ``duty``."""

    def __init__(
        self,
        frequency: float = 1.0,
        amplitude: float = 1.0,
        offset: float = 0.0,
        phase: float = 0.0,
        duty: float = 0.5,
    ) -> None:
        super().__init__(frequency, amplitude, offset, phase)
        self.duty = duty

    def shape(self, u: float) -> float:
        duty = finite_or_clamp(self.duty, 0.0, 1.0, 0.5)
        return 1.0 if u < duty else -1.0


class Sawtooth(_Oscillator):
    def __init__(
        self,
        frequency: float = 1.0,
        amplitude: float = 1.0,
        offset: float = 0.0,
        phase: float = 0.0,
        inverted: bool = False,
    ) -> None:
        super().__init__(frequency, amplitude, offset, phase)
        self.inverted = bool(inverted)

    @classmethod
    def inverted_with(cls, frequency: float) -> Sawtooth:
        return cls(frequency, inverted=True)

    def shape(self, u: float) -> float:
        if self.inverted:
            return 1.0 - 2.0 * u
        return 2.0 * u - 1.0


# =========================
# Utility leaves
# =========================


class Constant(Signal):
    def __init__(self, value: float = 0.0) -> None:
        self.value = finite_or(value, 0.0)

    @classmethod
    def zero(cls) -> Constant:
        return cls(0.0)

    @classmethod
    def one(cls) -> Constant:
        return cls(1.0)

    def output_range(self) -> SignalRange:
        return SignalRange(self.value, self.value)

    def sample(self, t: float) -> float:
        return self.value


def _span(a: float, b: float) -> SignalRange:
    return SignalRange(min(a, b), max(a, b))


class Ramp(Signal):
    """Linear ramp from ``start`` to ``end`` over ``duration`` seconds."""

    MIN_DURATION = 0.001

    def __init__(self, start: float = 0.0, end: float = 1.0, duration: float = 1.0) -> None:
        self.start = finite_or(start, 0.0)
        self.end = finite_or(end, 1.0)
        self.duration = max(finite_or(duration, self.MIN_DURATION), self.MIN_DURATION)

    @classmethod
    def normalized(cls, duration: float) -> Ramp:
        return cls(0.0, 1.0, duration)

    @classmethod
    def unit(cls) -> Ramp:
        return cls(0.0, 1.0, 1.0)

    def output_range(self) -> SignalRange:
        return _span(self.start, self.end)

    def sample(self, t: float) -> float:
        progress = min(max(sanitize_time(t) / self.duration, 0.0), 1.0)
        return self.start + (self.end - self.start) * progress


class Step(Signal):
    def __init__(self, before: float = 0.0, after: float = 1.0, threshold: float = 0.5) -> None:
        self.before = finite_or(before, 0.0)
        self.after = finite_or(after, 1.0)
        self.threshold = finite_or(threshold, 0.5)

    @classmethod
    def at(cls, threshold: float) -> Step:
        return cls(0.0, 1.0, threshold)

    def output_range(self) -> SignalRange:
        return _span(self.before, self.after)

    def sample(self, t: float) -> float:
        return self.before if sanitize_time(t) < self.threshold else self.after


class Pulse(Signal):
    """``high`` inside ``[start, end)``, ``low`` elsewhere."""

    def __init__(
        self,
        low: float = 0.0,
        high: float = 1.0,
        start: float = 0.25,
        end: float = 0.75,
    ) -> None:
        self.low = finite_or(low, 0.0)
        self.high = finite_or(high, 1.0)
        self.start = finite_or(start, 0.25)
        self.end = finite_or(end, 0.75)

    @classmethod
    def window(cls, start: float, end: float) -> Pulse:
        return cls(0.0, 1.0, start, end)

    def output_range(self) -> SignalRange:
        return _span(self.low, self.high)

    def sample(self, t: float) -> float:
        t = sanitize_time(t)
        return self.high if self.start <= t < self.end else self.low


# =========================
# Keyframes
# =========================


@dataclass(frozen=True, slots=True)
class Keyframe:
    time: float
    value: float


class Keyframes(Signal):
    """Piecewise-linear curve through ``(time, value)`` points.

    Points are sorted by time; an empty list becomes ``[(0, 0)]``. Before the
    first point the first value holds, after the last point the last value
    holds.
    """

    _MIN_GAP = 1e-10

    def __init__(self, keyframes: Iterable[Keyframe | Sequence[float]] = ()) -> None:
        points = [_as_keyframe(item) for item in keyframes]
        points.sort(key=lambda kf: kf.time)
        if not points:
            points = [Keyframe(0.0, 0.0)]
        self.keyframes: tuple[Keyframe, ...] = tuple(points)
        self._times = [kf.time for kf in points]

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[float]]) -> Keyframes:
        return cls(pairs)

    def __len__(self) -> int:
        return len(self.keyframes)

    def is_empty(self) -> bool:
        return not self.keyframes

    def output_range(self) -> SignalRange:
        values = [kf.value for kf in self.keyframes]
        return SignalRange(min(values), max(values))

    def sample(self, t: float) -> float:
        t = sanitize_time(t)
        frames = self.keyframes
        first, last = frames[0], frames[-1]
        if len(frames) == 1 or t <= first.time:
            return first.value
        if t >= last.time:
            return last.value
        index = bisect.bisect_left(self._times, t)
        if self._times[index] == t:
            return frames[index].value
        k0 = frames[index - 1]
        k1 = frames[index]
        gap = k1.time - k0.time
        if gap < self._MIN_GAP:
            return k0.value
        progress = (t - k0.time) / gap
        return k0.value + (k1.value - k0.value) * progress


def _as_keyframe(item: Keyframe | Sequence[float]) -> Keyframe:
    if isinstance(item, Keyframe):
        time, value = item.time, item.value
    else:
        time, value = item
    return Keyframe(finite_or(time, 0.0), finite_or(value, 0.0))


# =========================
# Phase nodes
# =========================


class PhaseAccumulator(Signal):
    """Integral of a frequency signal over ``[0, t]``, wrapped to ``[0, 1)``.

    Integration uses the trapezoidal rule at 1000 steps per second (at least
    one step, at most ``MAX_STEPS``; longer spans use wider steps). Negative or
    non-finite time returns the initial phase, as does an integral that
    overflows.
    """

    STEPS_PER_SECOND = 1000.0
    MAX_STEPS = 100_000

    def __init__(self, frequency: Signal, initial_phase: float = 0.0) -> None:
        self.frequency = frequency
        self.initial_phase = finite_or(initial_phase, 0.0) % 1.0

    @classmethod
    def with_frequency(cls, frequency: Signal) -> PhaseAccumulator:
        return cls(frequency, 0.0)

    def sample(self, t: float) -> float:
        return self._integrate(t, self.frequency.sample)

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._integrate(t, lambda tau: self.frequency.sample_with_context(tau, ctx))

    def _integrate(self, t: float, frequency_at: Callable[[float], float]) -> float:
        if not is_finite(t) or t < 0.0:
            return self.initial_phase
        num_steps = max(math.ceil(min(t * self.STEPS_PER_SECOND, self.MAX_STEPS)), 1)
        dt = t / num_steps
        accumulated = self.initial_phase
        prev_freq = finite_or(frequency_at(0.0), 0.0)
        for i in range(1, num_steps + 1):
            curr_freq = finite_or(frequency_at(i * dt), 0.0)
            accumulated += (prev_freq + curr_freq) * 0.5 * dt
            prev_freq = curr_freq
        if not is_finite(accumulated):
            return self.initial_phase
        wrapped = accumulated % 1.0
        # Rounding can land a hair below 1.0 after a whole number of cycles.
        if abs(wrapped - 1.0) < 1e-6:
            return 0.0
        return wrapped


class PhaseSine(Signal):
    """``sin(2*pi*phase)``; the last stage of integrating FM."""

    def __init__(self, phase: Signal) -> None:
        self.phase = phase

    def output_range(self) -> SignalRange:
        return BIPOLAR

    def sample(self, t: float) -> float:
        return math.sin(TAU * finite_or(self.phase.sample(t), 0.0))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return math.sin(TAU * finite_or(self.phase.sample_with_context(t, ctx), 0.0))


__all__ = [
    "Constant",
    "Keyframe",
    "Keyframes",
    "PhaseAccumulator",
    "PhaseSine",
    "Pulse",
    "Ramp",
    "Sawtooth",
    "Sine",
    "Square",
    "Step",
    "Triangle",
]
