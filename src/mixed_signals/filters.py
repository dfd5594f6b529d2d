# filters.py
"""Recurrent filters and saturators.

``LowPass``, ``Biquad`` and ``Svf`` keep a small history behind a lock held for
one sample's arithmetic. Time drives the history:

* ``t`` later than the last sample advances the filter by one step;
* ``t`` earlier than the last sample is a seek: history resets and the input
  is returned unfiltered;
* ``t`` equal to the last sample returns the cached output.

Use one filter instance per stream when several streams must stay
deterministic.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from enum import Enum

from .core import Signal, SignalContext, SignalRange, sanitize_time
from .generators import Constant
from .utils import TAU, clamp, finite_or

FRAC_1_SQRT_2 = 1.0 / math.sqrt(2.0)


class _StatefulFilter(Signal):
    """Shared time-monotonic driver; subclasses supply the per-sample update and cache."""

    def __init__(self, signal: Signal) -> None:
        self.signal = signal
        self._lock = threading.Lock()
        self._prev_time: float | None = None

    def output_range(self) -> SignalRange:
        return self.signal.output_range()

    def _prepare(self, t: float, ctx: SignalContext | None) -> float:
        """Sample side inputs before the history lock is taken."""

        return 0.0

    def _advance(self, value: float, control: float) -> float:
        raise NotImplementedError

    def _cached(self, value: float) -> float:
        raise NotImplementedError

    def _reset(self, value: float) -> None:
        raise NotImplementedError

    def _step(self, value: float, t: float, ctx: SignalContext | None) -> float:
        value = finite_or(value, 0.0)
        control = self._prepare(t, ctx)
        with self._lock:
            prev = self._prev_time
            if prev is None or t > prev:
                output = self._advance(value, control)
                self._prev_time = t
                return output
            if t < prev:
                self._reset(value)
                self._prev_time = t
                return value
            return self._cached(value)

    def reset(self) -> None:
        """Forget all history; the next sample starts a fresh stream."""

        with self._lock:
            self._reset(0.0)
            self._prev_time = None

    def sample(self, t: float) -> float:
        t = sanitize_time(t)
        return self._step(self.signal.sample(t), t, None)

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        t = sanitize_time(t)
        return self._step(self.signal.sample_with_context(t, ctx), t, ctx)


# =========================
# One-pole low-pass
# =========================


def one_pole_alpha(cutoff_hz: float, sample_rate: float) -> float:
    """Smoothing factor ``1 - exp(-2 pi fc / fs)`` clamped to ``[0, 1]``."""

    sample_rate = finite_or(sample_rate, 48000.0)
    if sample_rate <= 0.0:
        return 1.0
    cutoff_hz = max(finite_or(cutoff_hz, 0.0), 0.0)
    return clamp(1.0 - math.exp(-TAU * (cutoff_hz / sample_rate)), 0.0, 1.0)


class LowPass(_StatefulFilter):
    """One-pole IIR ``y = alpha * x + (1 - alpha) * y_prev``."""

    def __init__(self, signal: Signal, cutoff_hz: float = 1000.0, sample_rate: float = 48000.0) -> None:
        super().__init__(signal)
        self.cutoff_hz = cutoff_hz
        self.sample_rate = sample_rate
        self.alpha = one_pole_alpha(cutoff_hz, sample_rate)
        self._prev_output = 0.0

    @classmethod
    def with_alpha(cls, signal: Signal, alpha: float) -> LowPass:
        node = cls(signal)
        node.alpha = clamp(finite_or(alpha, 1.0), 0.0, 1.0)
        return node

    def _advance(self, value: float, control: float) -> float:
        self._prev_output = self.alpha * value + (1.0 - self.alpha) * self._prev_output
        return self._prev_output

    def _cached(self, value: float) -> float:
        return self._prev_output

    def _reset(self, value: float) -> None:
        self._prev_output = value


# =========================
# RBJ biquad
# =========================


class BiquadMode(Enum):
    LOW_PASS = "low_pass"
    HIGH_PASS = "high_pass"
    BAND_PASS = "band_pass"
    NOTCH = "notch"


@dataclass(frozen=True, slots=True)
class BiquadCoefficients:
    b0: float
    b1: float
    b2: float
    a1: float
    a2: float

    @classmethod
    def design(cls, mode: BiquadMode, cutoff_hz: float, q: float, sample_rate: float) -> BiquadCoefficients:
        """Cookbook coefficients normalised by ``a0``."""

        sample_rate = finite_or(sample_rate, 48000.0)
        if sample_rate <= 0.0:
            sample_rate = 48000.0
        cutoff_hz = clamp(finite_or(cutoff_hz, 1000.0), 1e-3, sample_rate * 0.499)
        q = max(finite_or(q, FRAC_1_SQRT_2), 0.001)
        omega = TAU * (cutoff_hz / sample_rate)
        sin_w = math.sin(omega)
        cos_w = math.cos(omega)
        alpha = sin_w / (2.0 * q)

        if mode is BiquadMode.LOW_PASS:
            b1 = 1.0 - cos_w
            b0 = b2 = b1 / 2.0
        elif mode is BiquadMode.HIGH_PASS:
            b0 = b2 = (1.0 + cos_w) / 2.0
            b1 = -(1.0 + cos_w)
        elif mode is BiquadMode.BAND_PASS:
            b0, b1, b2 = alpha, 0.0, -alpha
        else:
            b0, b1, b2 = 1.0, -2.0 * cos_w, 1.0

        a0 = 1.0 + alpha
        a1 = -2.0 * cos_w
        a2 = 1.0 - alpha
        return cls(b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0)


class Biquad(_StatefulFilter):
    """Direct-form I biquad with RBJ low/high/band-pass and notch responses."""

    def __init__(
        self,
        signal: Signal,
        mode: BiquadMode = BiquadMode.LOW_PASS,
        cutoff_hz: float = 1000.0,
        q: float = FRAC_1_SQRT_2,
        sample_rate: float = 48000.0,
    ) -> None:
        super().__init__(signal)
        self.mode = BiquadMode(mode)
        self.cutoff_hz = cutoff_hz
        self.q = q
        self.sample_rate = sample_rate
        self.coefficients = BiquadCoefficients.design(self.mode, cutoff_hz, q, sample_rate)
        self._x1 = self._x2 = self._y1 = self._y2 = 0.0

    @classmethod
    def lowpass(cls, signal: Signal, cutoff_hz: float, sample_rate: float) -> Biquad:
        return cls(signal, BiquadMode.LOW_PASS, cutoff_hz, FRAC_1_SQRT_2, sample_rate)

    @classmethod
    def highpass(cls, signal: Signal, cutoff_hz: float, sample_rate: float) -> Biquad:
        return cls(signal, BiquadMode.HIGH_PASS, cutoff_hz, FRAC_1_SQRT_2, sample_rate)

    @classmethod
    def bandpass(cls, signal: Signal, cutoff_hz: float, q: float, sample_rate: float) -> Biquad:
        return cls(signal, BiquadMode.BAND_PASS, cutoff_hz, q, sample_rate)

    @classmethod
    def notch(cls, signal: Signal, cutoff_hz: float, q: float, sample_rate: float) -> Biquad:
        return cls(signal, BiquadMode.NOTCH, cutoff_hz, q, sample_rate)

    def _advance(self, value: float, control: float) -> float:
        c = self.coefficients
        y = c.b0 * value + c.b1 * self._x1 + c.b2 * self._x2 - c.a1 * self._y1 - c.a2 * self._y2
        y = finite_or(y, 0.0)
        self._x2, self._x1 = self._x1, value
        self._y2, self._y1 = self._y1, y
        return y

    def _cached(self, value: float) -> float:
        return self._y1

    def _reset(self, value: float) -> None:
        self._x1 = self._x2 = self._y1 = self._y2 = 0.0


# =========================
# Chamberlin state-variable filter
# =========================


class SvfMode(Enum):
    LOW_PASS = "low_pass"
    HIGH_PASS = "high_pass"
    BAND_PASS = "band_pass"


class Svf(_StatefulFilter):
    """Chamberlin SVF whose cutoff is itself a signal.

    The cutoff is clamped to ``[20, 0.49 * sample_rate]`` every sample and
    ``q`` is floored at 0.5.
    """

    MIN_CUTOFF_HZ = 20.0

    def __init__(
        self,
        signal: Signal,
        cutoff: Signal,
        q: float = FRAC_1_SQRT_2,
        sample_rate: float = 48000.0,
        mode: SvfMode = SvfMode.LOW_PASS,
    ) -> None:
        super().__init__(signal)
        self.cutoff = cutoff
        self.q = max(finite_or(q, FRAC_1_SQRT_2), 0.5)
        sample_rate = finite_or(sample_rate, 48000.0)
        self.sample_rate = sample_rate if sample_rate > 0.0 else 48000.0
        self.mode = SvfMode(mode)
        self._low = 0.0
        self._band = 0.0

    @classmethod
    def lowpass(cls, signal: Signal, cutoff: Signal, q: float, sample_rate: float) -> Svf:
        return cls(signal, cutoff, q, sample_rate, SvfMode.LOW_PASS)

    @classmethod
    def highpass(cls, signal: Signal, cutoff: Signal, q: float, sample_rate: float) -> Svf:
        return cls(signal, cutoff, q, sample_rate, SvfMode.HIGH_PASS)

    @classmethod
    def bandpass(cls, signal: Signal, cutoff: Signal, q: float, sample_rate: float) -> Svf:
        return cls(signal, cutoff, q, sample_rate, SvfMode.BAND_PASS)

    @classmethod
    def lowpass_fixed(cls, signal: Signal, cutoff_hz: float, q: float, sample_rate: float) -> Svf:
        return cls.lowpass(signal, Constant(cutoff_hz), q, sample_rate)

    @classmethod
    def highpass_fixed(cls, signal: Signal, cutoff_hz: float, q: float, sample_rate: float) -> Svf:
        return cls.highpass(signal, Constant(cutoff_hz), q, sample_rate)

    @classmethod
    def bandpass_fixed(cls, signal: Signal, cutoff_hz: float, q: float, sample_rate: float) -> Svf:
        return cls.bandpass(signal, Constant(cutoff_hz), q, sample_rate)

    def _prepare(self, t: float, ctx: SignalContext | None) -> float:
        if ctx is None:
            raw = self.cutoff.sample(t)
        else:
            raw = self.cutoff.sample_with_context(t, ctx)
        return clamp(finite_or(raw, 1000.0), self.MIN_CUTOFF_HZ, self.sample_rate * 0.49)

    def _high(self, value: float) -> float:
        return value - self._low - self._band / self.q

    def _advance(self, value: float, control: float) -> float:
        f = 2.0 * math.sin(math.pi * (control / self.sample_rate))
        self._low += f * self._band
        high = self._high(value)
        self._band += f * high
        if not (math.isfinite(self._low) and math.isfinite(self._band)):
            self._low = self._band = 0.0
            high = 0.0
        if self.mode is SvfMode.LOW_PASS:
            return self._low
        if self.mode is SvfMode.BAND_PASS:
            return self._band
        return high

    def _cached(self, value: float) -> float:
        if self.mode is SvfMode.LOW_PASS:
            return self._low
        if self.mode is SvfMode.BAND_PASS:
            return self._band
        return self._high(value)

    def _reset(self, value: float) -> None:
        self._low = 0.0
        self._band = 0.0


# =========================
# Clipper
# =========================


class ClipMode(Enum):
    HARD = "hard"
    SOFT = "soft"


class Clipper(Signal):
    """Stateless saturator with separate positive and negative thresholds.

    ``SOFT`` keeps the linear region and bends the excess toward +/-1 with
    ``threshold + headroom * (1 - exp(-excess / headroom))``.
    """

    def __init__(
        self,
        signal: Signal,
        pos_threshold: float = 1.0,
        neg_threshold: float = -1.0,
        mode: ClipMode = ClipMode.HARD,
    ) -> None:
        self.signal = signal
        self.pos_threshold = finite_or(pos_threshold, 1.0)
        self.neg_threshold = finite_or(neg_threshold, -1.0)
        self.mode = ClipMode(mode)

    @classmethod
    def asymmetric(cls, signal: Signal, pos_threshold: float, neg_threshold: float) -> Clipper:
        return cls(signal, pos_threshold, neg_threshold, ClipMode.HARD)

    @classmethod
    def symmetric(cls, signal: Signal, threshold: float) -> Clipper:
        threshold = abs(finite_or(threshold, 1.0))
        return cls(signal, threshold, -threshold, ClipMode.HARD)

    @classmethod
    def soft(cls, signal: Signal, pos_threshold: float, neg_threshold: float) -> Clipper:
        return cls(signal, pos_threshold, neg_threshold, ClipMode.SOFT)

    @classmethod
    def soft_symmetric(cls, signal: Signal, threshold: float) -> Clipper:
        threshold = abs(finite_or(threshold, 1.0))
        return cls(signal, threshold, -threshold, ClipMode.SOFT)

    def output_range(self) -> SignalRange:
        source = self.signal.output_range()
        if self.mode is ClipMode.HARD:
            lo, hi = self.neg_threshold, self.pos_threshold
        else:
            lo, hi = min(self.neg_threshold, -1.0), max(self.pos_threshold, 1.0)
        return SignalRange(clamp(source.min, lo, hi), clamp(source.max, lo, hi))

    def _hard(self, value: float) -> float:
        return min(max(value, self.neg_threshold), self.pos_threshold)

    def _soft(self, value: float) -> float:
        pos, neg = self.pos_threshold, self.neg_threshold
        if value > pos:
            headroom = 1.0 - pos
            if headroom <= 0.0:
                return pos
            return pos + headroom * (1.0 - math.exp(-(value - pos) / headroom))
        if value < neg:
            headroom = 1.0 + neg
            if headroom <= 0.0:
                return neg
            return neg - headroom * (1.0 - math.exp(-(neg - value) / headroom))
        return value

    def _apply(self, value: float) -> float:
        value = finite_or(value, 0.0)
        if self.mode is ClipMode.HARD:
            return self._hard(value)
        return self._soft(value)

    def sample(self, t: float) -> float:
        return self._apply(self.signal.sample(t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._apply(self.signal.sample_with_context(t, ctx))


__all__ = [
    "Biquad",
    "BiquadCoefficients",
    "BiquadMode",
    "ClipMode",
    "Clipper",
    "FRAC_1_SQRT_2",
    "LowPass",
    "Svf",
    "SvfMode",
    "one_pole_alpha",
]
