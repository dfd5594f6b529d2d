# composition.py
"""Binary composition nodes.

These return the raw arithmetic result and only declare an inferred output
range; wrap the result in :class:`~mixed_signals.processing.Normalized` when a
clamped ``[0, 1]`` value is needed. ``VcaCentered`` is the one node that clamps
its inputs.
"""

from __future__ import annotations

from .core import Signal, SignalContext, SignalRange
from .utils import TAU, clamp, finite_or, is_finite


class Add(Signal):
    def __init__(self, a: Signal, b: Signal) -> None:
        self.a = a
        self.b = b

    def output_range(self) -> SignalRange:
        ra = self.a.output_range()
        rb = self.b.output_range()
        return SignalRange(ra.min + rb.min, ra.max + rb.max)

    def sample(self, t: float) -> float:
        return self.a.sample(t) + self.b.sample(t)

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self.a.sample_with_context(t, ctx) + self.b.sample_with_context(t, ctx)


class Multiply(Signal):
    def __init__(self, a: Signal, b: Signal) -> None:
        self.a = a
        self.b = b

    def output_range(self) -> SignalRange:
        ra = self.a.output_range()
        rb = self.b.output_range()
        corners = (ra.min * rb.min, ra.min * rb.max, ra.max * rb.min, ra.max * rb.max)
        return SignalRange(min(corners), max(corners))

    def sample(self, t: float) -> float:
        return self.a.sample(t) * self.b.sample(t)

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self.a.sample_with_context(t, ctx) * self.b.sample_with_context(t, ctx)


class Mix(Signal):
    """Crossfade: ``a * (1 - blend) + b * blend``; NaN blend means an even mix."""

    def __init__(self, a: Signal, b: Signal, blend: float = 0.5) -> None:
        self.a = a
        self.b = b
        self.blend = clamp(finite_or(blend, 0.5), 0.0, 1.0)

    @classmethod
    def equal(cls, a: Signal, b: Signal) -> Mix:
        return cls(a, b, 0.5)

    def output_range(self) -> SignalRange:
        ra = self.a.output_range()
        rb = self.b.output_range()
        w = self.blend
        return SignalRange(ra.min * (1.0 - w) + rb.min * w, ra.max * (1.0 - w) + rb.max * w)

    def _blend(self, va: float, vb: float) -> float:
        return va * (1.0 - self.blend) + vb * self.blend

    def sample(self, t: float) -> float:
        return self._blend(self.a.sample(t), self.b.sample(t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._blend(self.a.sample_with_context(t, ctx), self.b.sample_with_context(t, ctx))


class FrequencyMod(Signal):
    """Phase modulation of ``carrier`` by ``modulator`` (the synthesiser sense of FM).

    Samples ``carrier(t + depth * (2 * m - 1) / (2 * pi * carrier_freq))``
    where ``m`` is the modulator value. A zero or non-finite carrier frequency,
    or a non-finite depth, leaves the carrier unmodulated.
    """

    def __init__(
        self,
        carrier: Signal,
        modulator: Signal,
        depth: float = 1.0,
        carrier_freq: float = 1.0,
    ) -> None:
        self.carrier = carrier
        self.modulator = modulator
        self.depth = depth
        self.carrier_freq = carrier_freq

    @classmethod
    def simple(cls, carrier: Signal, modulator: Signal, depth: float) -> FrequencyMod:
        return cls(carrier, modulator, depth, 1.0)

    def output_range(self) -> SignalRange:
        return self.carrier.output_range()

    def _bypassed(self) -> bool:
        return (
            not is_finite(self.carrier_freq)
            or self.carrier_freq == 0.0
            or not is_finite(self.depth)
        )

    def _shift(self, modulation: float) -> float:
        modulation = finite_or(modulation, 0.5)
        return self.depth * (2.0 * modulation - 1.0) / (TAU * self.carrier_freq)

    def sample(self, t: float) -> float:
        t = finite_or(t, 0.0)
        if self._bypassed():
            return self.carrier.sample(t)
        return self.carrier.sample(t + self._shift(self.modulator.sample(t)))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        t = finite_or(t, 0.0)
        if self._bypassed():
            return self.carrier.sample_with_context(t, ctx)
        shifted = t + self._shift(self.modulator.sample_with_context(t, ctx))
        return self.carrier.sample_with_context(shifted, ctx)


class VcaCentered(Signal):
    """Amplitude control that fades toward 0.5 instead of 0.

    ``carrier * amplitude + 0.5 * (1 - amplitude)`` with both inputs clamped
    to ``[0, 1]``; a non-finite carrier reads as 0.5 and a non-finite
    amplitude as 0.
    """

    def __init__(self, carrier: Signal, amplitude: Signal) -> None:
        self.carrier = carrier
        self.amplitude = amplitude

    @staticmethod
    def _apply(carrier: float, amplitude: float) -> float:
        carrier = clamp(finite_or(carrier, 0.5), 0.0, 1.0)
        amplitude = clamp(finite_or(amplitude, 0.0), 0.0, 1.0)
        return carrier * amplitude + 0.5 * (1.0 - amplitude)

    def sample(self, t: float) -> float:
        return self._apply(self.carrier.sample(t), self.amplitude.sample(t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._apply(
            self.carrier.sample_with_context(t, ctx),
            self.amplitude.sample_with_context(t, ctx),
        )


__all__ = ["Add", "FrequencyMod", "Mix", "Multiply", "VcaCentered"]
