# noise.py
"""Sample-and-hold white noise and 1D value-noise octaves."""

from __future__ import annotations

import math

from .core import Signal, SignalContext, SignalRange, sanitize_time
from .noise_helpers import bipolar_range, uniform_bipolar
from .utils import (
    GOLDEN_GAMMA,
    SEED_MIX,
    U64_MASK,
    U64_MAX,
    clamp,
    finite_or,
    finite_or_min,
    to_u64,
    wrapping_add,
    wrapping_mul,
)


class WhiteNoise(Signal):
    """Uniform bipolar noise held for ``1 / sample_rate`` seconds per value."""

    def __init__(
        self,
        seed: int = 0,
        amplitude: float = 1.0,
        sample_rate: float = 60.0,
        offset: float = 0.0,
    ) -> None:
        self.seed = to_u64(seed)
        self.amplitude = amplitude
        self.sample_rate = sample_rate
        self.offset = offset

    @classmethod
    def with_offset(
        cls, seed: int, amplitude: float, offset: float, sample_rate: float = 60.0
    ) -> WhiteNoise:
        return cls(seed, amplitude, sample_rate, offset)

    @classmethod
    def with_seed(cls, seed: int) -> WhiteNoise:
        return cls(seed)

    def output_range(self) -> SignalRange:
        return bipolar_range(self.amplitude, self.offset)

    def _sample_index(self, t: float) -> int:
        sample_rate = finite_or_min(self.sample_rate, 1.0, 60.0)
        return to_u64(sanitize_time(t) * sample_rate)

    def _scale(self, bipolar: float) -> float:
        return finite_or(self.offset, 0.0) + finite_or(self.amplitude, 1.0) * bipolar

    def sample(self, t: float) -> float:
        return self._scale(uniform_bipolar(self.seed, self._sample_index(t)))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        seed = wrapping_add(self.seed, ctx.seed) if ctx.seed != 0 else self.seed
        index = wrapping_add(self._sample_index(t), ctx.frame)
        return self._scale(uniform_bipolar(seed, index))


# =========================
# Value noise
# =========================


def _lattice_value(seed: int, x: int) -> float:
    n = wrapping_mul(wrapping_add(seed, x & U64_MASK), SEED_MIX)
    n ^= n >> 32
    n = wrapping_mul(n, GOLDEN_GAMMA)
    n ^= n >> 32
    return (n / U64_MAX) * 2.0 - 1.0


def _smoothstep(t: float) -> float:
    return t * t * (3.0 - 2.0 * t)


def noise_1d(seed: int, x: float) -> float:
    """Smoothstep interpolation between hashed values at ``floor(x)`` and ``floor(x) + 1``."""

    x0 = math.floor(x)
    g0 = _lattice_value(seed, x0)
    g1 = _lattice_value(seed, x0 + 1)
    return g0 + (g1 - g0) * _smoothstep(x - x0)


class PerlinNoise(Signal):
    """Octaves of 1D value noise (a cheap Perlin approximation).

    Octave ``i`` uses seed ``seed + i * 31337``, doubles the frequency and
    scales its weight by ``persistence ** i``; the sum is divided by the total
    weight so the result stays bipolar before amplitude/offset.
    """

    OCTAVE_SEED_STRIDE = 31337

    def __init__(
        self,
        seed: int = 0,
        scale: float = 1.0,
        amplitude: float = 1.0,
        offset: float = 0.0,
        octaves: int = 1,
        persistence: float = 0.5,
    ) -> None:
        self.seed = to_u64(seed)
        self.scale = scale
        self.amplitude = amplitude
        self.offset = offset
        self.octaves = max(int(octaves), 1)
        self.persistence = persistence

    @classmethod
    def with_offset(cls, seed: int, scale: float, amplitude: float, offset: float) -> PerlinNoise:
        return cls(seed, scale, amplitude, offset)

    @classmethod
    def with_seed(cls, seed: int) -> PerlinNoise:
        return cls(seed)

    def with_octaves(self, octaves: int, persistence: float) -> PerlinNoise:
        self.octaves = max(int(octaves), 1)
        self.persistence = persistence
        return self

    def output_range(self) -> SignalRange:
        return bipolar_range(self.amplitude, self.offset)

    def sample(self, t: float) -> float:
        t = sanitize_time(t)
        frequency = finite_or(self.scale, 1.0)
        persistence = finite_or(self.persistence, 0.5)
        weight = 1.0
        total = 0.0
        max_value = 0.0
        for octave in range(self.octaves):
            if not math.isfinite(weight):
                break
            octave_seed = wrapping_add(self.seed, octave * self.OCTAVE_SEED_STRIDE)
            x = t * frequency
            if not math.isfinite(x):
                x = 0.0
            total += noise_1d(octave_seed, x) * weight
            max_value += weight
            weight *= persistence
            frequency *= 2.0
        bipolar = total / max_value if max_value != 0.0 else 0.0
        # Negative or huge persistence can push the ratio outside [-1, 1].
        bipolar = clamp(finite_or(bipolar, 0.0), -1.0, 1.0)
        return finite_or(self.offset, 0.0) + bipolar * finite_or(self.amplitude, 1.0)


__all__ = ["PerlinNoise", "WhiteNoise", "noise_1d"]
