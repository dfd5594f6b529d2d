# stochastic.py
"""Seeded random and distribution-shaped noise generators.

Every node is a pure function of ``(seed, time, context)``: the RNG is rebuilt
from a derived seed on every sample, so repeated calls agree exactly. The
``Fast*`` variants replace the counter-based generator with a SplitMix64 hash.
"""

from __future__ import annotations

import math

from .core import UNIT, Signal, SignalContext, SignalRange, sanitize_time
from .noise_helpers import (
    bipolar_range,
    ema_smoothing,
    hash_to_index,
    next_u64,
    octave_sum,
    rng_from_context,
    rng_from_seed,
    rng_from_time,
    scale_bipolar,
    time_to_millis,
    u64_to_bipolar,
    uniform_bipolar,
)
from .utils import (
    GOLDEN_GAMMA,
    SEED_MIX,
    U64_MAX,
    clamp,
    derive_seed,
    expand_seed,
    fast_random,
    finite_or,
    finite_or_min,
    is_finite,
    rotate_left,
    to_u64,
    wrapping_add,
    wrapping_mul,
)

FRAMES_PER_SECOND = 60.0
PINK_OCTAVES = 5
CORRELATION_WINDOW = 10


def _frame_from_time(t: float) -> int:
    return to_u64(sanitize_time(t) * FRAMES_PER_SECOND)


def _check_correlation(name: str, correlation: float) -> None:
    if not (is_finite(correlation) and 0.0 <= correlation <= 1.0):
        raise ValueError(f"{name} correlation must be 0.0-1.0, got {correlation}")


def _check_finite(name: str, field: str, value: float) -> None:
    if not is_finite(value):
        raise ValueError(f"{name} {field} must be finite, got {value}")


class _SeededNoise(Signal):
    """Shared ``seed``/``amplitude``/``offset`` handling."""

    def __init__(self, seed: int = 0, amplitude: float = 1.0, offset: float = 0.0) -> None:
        self.seed = to_u64(seed)
        self.amplitude = amplitude
        self.offset = offset

    @classmethod
    def with_seed(cls, seed: int):
        return cls(seed)

    def output_range(self) -> SignalRange:
        return bipolar_range(self.amplitude, self.offset)

    def _scale(self, bipolar: float) -> float:
        return scale_bipolar(bipolar, self.amplitude, self.offset)


# =========================
# Uniform draws
# =========================


class SeededRandom(_SeededNoise):
    """Unipolar draw keyed by whole milliseconds, clamped to ``[0, 1]``."""

    def output_range(self) -> SignalRange:
        return UNIT

    def _unit(self, value: float) -> float:
        amplitude = finite_or(self.amplitude, 1.0)
        offset = finite_or(self.offset, 0.0)
        return clamp(offset + value * amplitude, 0.0, 1.0)

    def draw(self, seed: int, input_value: int) -> float:
        return next_u64(rng_from_seed(derive_seed(seed, input_value))) / U64_MAX

    def sample(self, t: float) -> float:
        return self._unit(self.draw(self.seed, time_to_millis(t)))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        seed = wrapping_add(self.seed, ctx.seed)
        return self._unit(self.draw(seed, wrapping_add(time_to_millis(t), ctx.frame)))


class FastSeededRandom(SeededRandom):
    def draw(self, seed: int, input_value: int) -> float:
        return fast_random(seed, input_value)


# =========================
# 1/f and correlated noise
# =========================


class PinkNoise(_SeededNoise):
    """Five octaves of held uniform noise weighted ``1 / (octave + 1)``."""

    def draw(self, seed: int, frame: int) -> float:
        return uniform_bipolar(seed, frame)

    def sample(self, t: float) -> float:
        return self._scale(octave_sum(self.seed, _frame_from_time(t), PINK_OCTAVES, self.draw))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        seed = wrapping_add(self.seed, ctx.seed)
        return self._scale(octave_sum(seed, ctx.frame, PINK_OCTAVES, self.draw))


class FastPinkNoise(PinkNoise):
    def draw(self, seed: int, frame: int) -> float:
        return fast_random(seed, frame) * 2.0 - 1.0


class CorrelatedNoise(_SeededNoise):
    """Random walk smoothed by an EMA over the last ten frames.

    Raises :class:`ValueError` when ``correlation`` lies outside ``[0, 1]``.
    """

    def __init__(
        self,
        seed: int = 0,
        correlation: float = 0.95,
        amplitude: float = 1.0,
        offset: float = 0.0,
    ) -> None:
        _check_correlation(type(self).__name__, correlation)
        super().__init__(seed, amplitude, offset)
        self.correlation = correlation

    def draw(self, seed: int, frame: int) -> float:
        return uniform_bipolar(seed, frame)

    def _smoothed(self, seed: int, frame: int) -> float:
        return ema_smoothing(
            frame,
            self.correlation,
            CORRELATION_WINDOW,
            lambda past_frame: self.draw(seed, past_frame),
        )

    def sample(self, t: float) -> float:
        return self._scale(self._smoothed(self.seed, _frame_from_time(t)))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        seed = wrapping_add(self.seed, ctx.seed)
        return self._scale(self._smoothed(seed, ctx.frame))


class FastCorrelatedNoise(CorrelatedNoise):
    def draw(self, seed: int, frame: int) -> float:
        return fast_random(seed, frame) * 2.0 - 1.0


# =========================
# Distribution-shaped noise
# =========================


class GaussianNoise(_SeededNoise):
    """Normal draws clipped to +/-3 sigma and rescaled to ``[-1, 1]``."""

    def __init__(
        self,
        seed: int = 0,
        std_dev: float = 1.0,
        amplitude: float = 1.0,
        offset: float = 0.0,
    ) -> None:
        if is_finite(std_dev) and std_dev < 0.0:
            raise ValueError(f"GaussianNoise std_dev must be >= 0, got {std_dev}")
        _check_finite("GaussianNoise", "std_dev", std_dev)
        _check_finite("GaussianNoise", "amplitude", amplitude)
        _check_finite("GaussianNoise", "offset", offset)
        super().__init__(seed, amplitude, offset)
        self.std_dev = std_dev

    def _draw(self, rng) -> float:
        std_dev = finite_or(self.std_dev, 1.0)
        if std_dev <= 0.0:
            return finite_or(self.offset, 0.0)
        value = float(rng.normal(0.0, std_dev))
        if not is_finite(value):
            return finite_or(self.offset, 0.0)
        return self._scale(clamp(value / (3.0 * std_dev), -1.0, 1.0))

    def sample(self, t: float) -> float:
        return self._draw(rng_from_time(self.seed, t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._draw(rng_from_context(self.seed, t, ctx))


class PoissonNoise(_SeededNoise):
    """Poisson counts turned into a clipped z-score ``(n - lambda) / sqrt(lambda) / 3``."""

    def __init__(
        self,
        seed: int = 0,
        lambda_: float = 2.0,
        amplitude: float = 1.0,
        offset: float = 0.0,
    ) -> None:
        if is_finite(lambda_) and lambda_ <= 0.0:
            raise ValueError(f"PoissonNoise lambda must be > 0, got {lambda_}")
        _check_finite("PoissonNoise", "lambda", lambda_)
        _check_finite("PoissonNoise", "amplitude", amplitude)
        _check_finite("PoissonNoise", "offset", offset)
        super().__init__(seed, amplitude, offset)
        self.lambda_ = lambda_

    def _draw(self, rng) -> float:
        lam = self.lambda_
        if not is_finite(lam) or lam <= 0.0:
            return finite_or(self.offset, 0.0)
        try:
            count = float(rng.poisson(lam))
        except ValueError:
            # numpy refuses rates beyond its sampler's range
            return finite_or(self.offset, 0.0)
        z = (count - lam) / math.sqrt(lam)
        return self._scale(clamp(z / 3.0, -1.0, 1.0))

    def sample(self, t: float) -> float:
        return self._draw(rng_from_time(self.seed, t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._draw(rng_from_context(self.seed, t, ctx))


class StudentTNoise(_SeededNoise):
    """Heavy-tailed noise: ``tanh(sample * scale / 3)`` for a Student-t draw."""

    def __init__(
        self,
        degrees_of_freedom: float = 3.0,
        seed: int = 0,
        scale: float = 1.0,
        amplitude: float = 1.0,
        offset: float = 0.0,
    ) -> None:
        if is_finite(degrees_of_freedom) and degrees_of_freedom <= 0.0:
            raise ValueError(
                f"StudentTNoise degrees_of_freedom must be > 0, got {degrees_of_freedom}"
            )
        _check_finite("StudentTNoise", "degrees_of_freedom", degrees_of_freedom)
        _check_finite("StudentTNoise", "scale", scale)
        _check_finite("StudentTNoise", "amplitude", amplitude)
        _check_finite("StudentTNoise", "offset", offset)
        super().__init__(seed, amplitude, offset)
        self.degrees_of_freedom = degrees_of_freedom
        self.scale = scale

    @classmethod
    def default_audio(cls, seed: int) -> StudentTNoise:
        return cls(3.0, seed)

    @classmethod
    def with_seed(cls, seed: int) -> StudentTNoise:
        return cls.default_audio(seed)

    def _draw(self, rng) -> float:
        df = finite_or(self.degrees_of_freedom, 3.0)
        if df <= 0.0:
            return finite_or(self.offset, 0.0)
        value = float(rng.standard_t(df))
        if not is_finite(value):
            return finite_or(self.offset, 0.0)
        return self._scale(math.tanh(value * finite_or(self.scale, 1.0) / 3.0))

    def sample(self, t: float) -> float:
        return self._draw(rng_from_time(self.seed, t))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._draw(rng_from_context(self.seed, t, ctx))


# =========================
# Impulses
# =========================


class ImpulseNoise(_SeededNoise):
    """Poisson-process clicks: ``offset + amplitude`` inside an impulse, ``offset - amplitude`` elsewhere.

    Time is split into buckets; each bucket draws exponential inter-arrival
    times from its own seed until the bucket is consumed (at most ten
    candidates). The previous bucket is checked as well so impulses that start
    near a boundary are not cut off.
    """

    MIN_IMPULSE_WIDTH = 0.0001
    MAX_CHECKS = 10

    def __init__(
        self,
        rate_hz: float = 1.0,
        seed: int = 0,
        impulse_width: float = 0.001,
        bucket_size: float = 0.1,
        amplitude: float = 1.0,
        offset: float = 0.0,
    ) -> None:
        super().__init__(seed, amplitude, offset)
        self.rate_hz = max(finite_or(rate_hz, 0.0), 0.0)
        self.impulse_width = max(finite_or(impulse_width, 0.001), self.MIN_IMPULSE_WIDTH)
        self.bucket_size = clamp(finite_or(bucket_size, 0.1), 0.01, 1.0)

    @classmethod
    def with_width(cls, rate_hz: float, seed: int, impulse_width: float) -> ImpulseNoise:
        return cls(rate_hz, seed, impulse_width=impulse_width)

    @classmethod
    def with_bucket_size(cls, rate_hz: float, seed: int, bucket_size: float) -> ImpulseNoise:
        return cls(rate_hz, seed, bucket_size=bucket_size)

    @classmethod
    def with_seed(cls, seed: int) -> ImpulseNoise:
        return cls(1.0, seed)

    def _bucket_hit(self, t: float, seed: int, bucket_index: int, max_checks: int) -> bool:
        bucket_start = bucket_index * self.bucket_size
        bucket_end = bucket_start + self.bucket_size
        rng = rng_from_seed(derive_seed(seed, bucket_index))
        impulse_time = bucket_start
        for _ in range(max_checks):
            impulse_time += float(rng.exponential(1.0 / self.rate_hz))
            if impulse_time > bucket_end:
                break
            if impulse_time <= t < impulse_time + self.impulse_width:
                return True
        return False

    def is_in_impulse(self, t: float, seed: int) -> bool:
        if self.rate_hz <= 0.0:
            return False
        bucket_index = to_u64(math.floor(t / self.bucket_size))
        expected = self.rate_hz * self.bucket_size
        max_checks = max(math.ceil(min(expected * 3.0, self.MAX_CHECKS)), 1)
        if self._bucket_hit(t, seed, bucket_index, max_checks):
            return True
        return bucket_index > 0 and self._bucket_hit(t, seed, bucket_index - 1, max_checks)

    def _level(self, t: float, seed: int) -> float:
        t = sanitize_time(t)
        amplitude = finite_or(self.amplitude, 1.0)
        offset = finite_or(self.offset, 0.0)
        if t >= 0.0 and self.is_in_impulse(t, seed):
            return offset + amplitude
        return offset - amplitude

    def sample(self, t: float) -> float:
        return self._level(t, self.seed)

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._level(t, wrapping_add(self.seed, ctx.seed))


# =========================
# Spatial / per-element noise
# =========================

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


def derive_spatial_seed(base_seed: int, x: int, y: int) -> bytes:
    """32-byte seed from a base seed and signed 2D lattice coordinates."""

    h = base_seed
    h ^= wrapping_mul(x, SEED_MIX)
    h = rotate_left(h, 31)
    h ^= wrapping_mul(y, GOLDEN_GAMMA)
    h = rotate_left(h, 31)
    h ^= h >> 32
    h = wrapping_mul(h, SEED_MIX)
    h ^= h >> 32
    return expand_seed(h)


class SpatialNoise(Signal):
    """One bipolar draw per lattice cell; context width/height select the cell."""

    def __init__(self, seed: int = 0, frequency: float = 1.0, amplitude: float = 1.0) -> None:
        self.seed = to_u64(seed)
        self.frequency = frequency
        self.amplitude = amplitude

    @classmethod
    def with_seed(cls, seed: int) -> SpatialNoise:
        return cls(seed)

    def output_range(self) -> SignalRange:
        amplitude = finite_or(self.amplitude, 1.0)
        return SignalRange(-amplitude, amplitude)

    def _draw(self, seed: int, x: int, y: int) -> float:
        rng = rng_from_seed(derive_spatial_seed(seed, x, y))
        return u64_to_bipolar(next_u64(rng)) * finite_or(self.amplitude, 1.0)

    def sample(self, t: float) -> float:
        frequency = finite_or_min(self.frequency, 0.01, 1.0)
        position = sanitize_time(t) * frequency
        x = int(clamp(position, _I32_MIN, _I32_MAX)) if is_finite(position) else 0
        return self._draw(self.seed, x, 0)

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        return self._draw(wrapping_add(self.seed, ctx.seed), ctx.width, ctx.height)


class PerCharacterNoise(_SeededNoise):
    """Noise keyed only by the element index, constant over time.

    With a context the index is ``ctx.char_index`` (falling back to
    ``ctx.frame``); without one, ``t * 100`` stands in for the index.
    """

    def __init__(self, base_seed: int = 0, amplitude: float = 1.0, offset: float = 0.0) -> None:
        super().__init__(base_seed, amplitude, offset)

    @property
    def base_seed(self) -> int:
        return self.seed

    def sample(self, t: float) -> float:
        pseudo_index = to_u64(sanitize_time(t) * 100.0)
        return self._scale(uniform_bipolar(self.seed, pseudo_index))

    def sample_with_context(self, t: float, ctx: SignalContext) -> float:
        index = ctx.char_index if ctx.char_index is not None else ctx.frame
        seed = wrapping_add(self.seed, ctx.seed)
        return self._scale(uniform_bipolar(seed, to_u64(index)))


__all__ = [
    "CorrelatedNoise",
    "FastCorrelatedNoise",
    "FastPinkNoise",
    "FastSeededRandom",
    "GaussianNoise",
    "ImpulseNoise",
    "PerCharacterNoise",
    "PinkNoise",
    "PoissonNoise",
    "SeededRandom",
    "SpatialNoise",
    "StudentTNoise",
    "derive_spatial_seed",
    "hash_to_index",
]
