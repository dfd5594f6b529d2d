"""Envelope shapes over normalised progress (``t`` in ``[0, 1]``)."""

from __future__ import annotations

import math

from .core import Signal
from .utils import clamp, finite_or


def _fit_segments(*segments: float) -> tuple[float, ...]:
    """Clamp each segment to ``[0, 1]`` and shrink them together if they overflow 1."""

    values = [clamp(finite_or(value, 0.0), 0.0, 1.0) for value in segments]
    total = sum(values)
    if total > 1.0:
        values = [value / total for value in values]
    return tuple(values)


class Adsr(Signal):
    """Attack/decay/sustain/release envelope.

    Attack ends at ``attack``, decay at ``attack + decay`` and the sustain
    plateau at ``1 - release``. ``peak`` scales the whole curve; the result is
    clamped to ``[0, 1]``.
    """

    def __init__(
        self,
        attack: float = 0.1,
        decay: float = 0.1,
        sustain: float = 0.7,
        release: float = 0.2,
        peak: float = 1.0,
    ) -> None:
        self.attack, self.decay, self.release = _fit_segments(attack, decay, release)
        self.sustain = clamp(finite_or(sustain, 0.7), 0.0, 1.0)
        self.peak = peak

    def with_peak(self, peak: float) -> Adsr:
        self.peak = peak
        return self

    def sample(self, t: float) -> float:
        t = clamp(finite_or(t, 0.0), 0.0, 1.0)
        attack, decay, release = self.attack, self.decay, self.release
        peak = finite_or(self.peak, 1.0)
        sustain_level = self.sustain * peak
        decay_end = attack + decay
        sustain_end = 1.0 - release

        if t < attack:
            value = (t / attack) * peak if attack > 0.0 else peak
        elif t < decay_end:
            if decay > 0.0:
                progress = (t - attack) / decay
                value = peak - (peak - sustain_level) * progress
            else:
                value = sustain_level
        elif t < sustain_end:
            value = sustain_level
        elif release > 0.0:
            value = sustain_level * (1.0 - (t - sustain_end) / release)
        else:
            value = 0.0
        return clamp(value, 0.0, 1.0)


class LinearEnvelope(Signal):
    """Attack ramp, flat hold at ``peak``, release ramp."""

    def __init__(self, attack: float = 0.1, release: float = 0.1, peak: float = 1.0) -> None:
        self.attack, self.release = _fit_segments(attack, release)
        self.peak = peak

    @classmethod
    def symmetric(cls, time: float) -> LinearEnvelope:
        return cls(time, time)

    def with_peak(self, peak: float) -> LinearEnvelope:
        self.peak = peak
        return self

    def sample(self, t: float) -> float:
        t = clamp(finite_or(t, 0.0), 0.0, 1.0)
        peak = finite_or(self.peak, 1.0)
        hold_end = 1.0 - self.release
        if t < self.attack:
            value = (t / self.attack) * peak if self.attack > 0.0 else peak
        elif t < hold_end:
            value = peak
        elif self.release > 0.0:
            value = peak * (1.0 - (t - hold_end) / self.release)
        else:
            value = 0.0
        return clamp(value, 0.0, 1.0)


class Impact(Signal):
    """Exponential hit: ``intensity * exp(-decay * t)`` clamped to ``[0, 1]``."""

    def __init__(self, intensity: float = 1.0, decay: float = 3.0) -> None:
        self.intensity = intensity
        self.decay = max(finite_or(decay, 3.0), 0.0)

    @classmethod
    def with_intensity(cls, intensity: float) -> Impact:
        return cls(intensity, 3.0)

    def sample(self, t: float) -> float:
        t = finite_or(t, 0.0)
        intensity = finite_or(self.intensity, 1.0)
        if t < 0.0:
            return clamp(intensity, 0.0, 1.0)
        return clamp(intensity * math.exp(-self.decay * t), 0.0, 1.0)


__all__ = ["Adsr", "Impact", "LinearEnvelope"]
