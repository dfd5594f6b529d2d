"""Stateless helpers shared by the seeded noise generators."""

from __future__ import annotations

from typing import Callable

import numpy as np

from .core import SignalContext, SignalRange
from .utils import (
    GOLDEN_GAMMA,
    SEED_MIX,
    U64_MAX,
    derive_seed,
    finite_or,
    to_u64,
    wrapping_add,
    wrapping_mul,
)


def bipolar_range(amplitude: float, offset: float) -> SignalRange:
    """Range ``[offset - amplitude, offset + amplitude]`` with sanitised inputs."""

    amplitude = finite_or(amplitude, 1.0)
    offset = finite_or(offset, 0.0)
    return SignalRange(offset - amplitude, offset + amplitude)


def rng_from_seed(seed_bytes: bytes) -> np.random.Generator:
    """Build a keyed counter-based generator from a 32-byte seed.

    The first two little-endian words form the Philox key and the remaining
    two words initialise the counter.
    """

    words = np.frombuffer(seed_bytes, dtype="<u8")
    counter = np.zeros(4, dtype=np.uint64)
    counter[:2] = words[2:4]
    return np.random.Generator(np.random.Philox(key=words[:2].copy(), counter=counter))


def next_u64(rng: np.random.Generator) -> int:
    return int(rng.bit_generator.random_raw())


def time_to_millis(t: float) -> int:
    return to_u64(finite_or(t, 0.0) * 1000.0)


def rng_from_time(seed: int, t: float) -> np.random.Generator:
    """Generator keyed by ``seed`` and the whole-millisecond part of ``t``."""

    return rng_from_seed(derive_seed(seed, time_to_millis(t)))


def rng_from_context(base_seed: int, t: float, ctx: SignalContext) -> np.random.Generator:
    """Generator keyed by ``base_seed + ctx.seed`` and ``time_ms + ctx.frame``."""

    effective_seed = wrapping_add(base_seed, ctx.seed)
    combined_input = wrapping_add(time_to_millis(t), ctx.frame)
    return rng_from_seed(derive_seed(effective_seed, combined_input))


def u64_to_bipolar(value: int) -> float:
    return (value / U64_MAX) * 2.0 - 1.0


def uniform_bipolar(seed: int, input_value: int) -> float:
    """One bipolar draw from the generator keyed by ``(seed, input_value)``."""

    return u64_to_bipolar(next_u64(rng_from_seed(derive_seed(seed, input_value))))


def scale_bipolar(bipolar: float, amplitude: float, offset: float) -> float:
    amplitude = finite_or(amplitude, 1.0)
    offset = finite_or(offset, 0.0)
    return offset + bipolar * amplitude


def ema_smoothing(
    frame: int,
    correlation: float,
    window: int,
    sample_fn: Callable[[int], float],
) -> float:
    """Exponentially weighted average of ``sample_fn`` over the trailing window.

    Frame ``frame - i`` is weighted ``correlation ** i``; frames before zero are
    skipped. Returns 0.0 when no weight accumulates.
    """

    correlation = finite_or(correlation, 0.95)
    smoothed = 0.0
    weight_sum = 0.0
    for i in range(window):
        if frame >= i:
            weight = correlation**i
            smoothed += sample_fn(frame - i) * weight
            weight_sum += weight
    if weight_sum > 0.0:
        return smoothed / weight_sum
    return 0.0


def octave_sum(
    seed: int,
    frame: int,
    num_octaves: int,
    sample_fn: Callable[[int, int], float],
) -> float:
    """1/f sum of ``num_octaves`` draws, each octave at half the frame rate."""

    total = 0.0
    normalizer = 0.0
    for octave in range(num_octaves):
        octave_seed = wrapping_add(seed, octave * 1000)
        weight = 1.0 / (octave + 1.0)
        total += sample_fn(octave_seed, frame >> octave) * weight
        normalizer += weight
    if normalizer > 0.0:
        return total / normalizer
    return 0.0


def hash_to_index(seed_a: int, seed_b: int, length: int) -> int:
    """Deterministically map a seed pair to an index in ``[0, length)``."""

    if length <= 0:
        return 0
    x = wrapping_mul(wrapping_add(seed_a, seed_b), SEED_MIX)
    x ^= x >> 32
    x = wrapping_mul(x, GOLDEN_GAMMA)
    x ^= x >> 32
    return x % length


__all__ = [
    "bipolar_range",
    "ema_smoothing",
    "hash_to_index",
    "next_u64",
    "octave_sum",
    "rng_from_context",
    "rng_from_seed",
    "rng_from_time",
    "scale_bipolar",
    "time_to_millis",
    "u64_to_bipolar",
    "uniform_bipolar",
]
