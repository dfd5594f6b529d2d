# utils.py
from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

# =========================
# Settings / fidelity
# =========================
RAW_DTYPE = np.float64

U64_MASK = 0xFFFF_FFFF_FFFF_FFFF
U64_MAX = float(U64_MASK)
TAU = 2.0 * math.pi

SEED_MIX = 0x517CC1B727220A95
GOLDEN_GAMMA = 0x9E3779B97F4A7C15
_SPLITMIX_M1 = 0xBF58476D1CE4E5B9
_SPLITMIX_M2 = 0x94D049BB133111EB


# =========================
# Sanitisers
# =========================


def is_finite(value) -> bool:
    try:
        return math.isfinite(value)
    except (TypeError, OverflowError):
        return False


def finite_or(value: float, fallback: float) -> float:
    """Return ``value`` when finite, otherwise ``fallback``."""

    return float(value) if is_finite(value) else float(fallback)


finite_or_f64 = finite_or


def finite_or_min(value: float, minimum: float, fallback: float) -> float:
    """Return ``max(value, minimum)`` for finite values, else ``fallback``."""

    if not is_finite(value):
        return float(fallback)
    return max(float(value), float(minimum))


def finite_or_clamp(value: float, minimum: float, maximum: float, fallback: float) -> float:
    """Clamp finite ``value`` to ``[minimum, maximum]``; non-finite gives ``fallback``."""

    if not is_finite(value):
        return float(fallback)
    return min(max(float(value), float(minimum)), float(maximum))


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


# =========================
# Unsigned 64-bit helpers
# =========================


def to_u64(value) -> int:
    """Convert to u64: floats saturate, ints wrap; NaN and negatives map to 0."""

    if isinstance(value, int):
        return value & U64_MASK if value >= 0 else 0
    if not is_finite(value):
        return U64_MASK if value == math.inf else 0
    if value <= 0.0:
        return 0
    if value >= 18446744073709551615.0:
        return U64_MASK
    return int(value)


def wrapping_add(a: int, b: int) -> int:
    return (a + b) & U64_MASK


def wrapping_mul(a: int, b: int) -> int:
    return (a * b) & U64_MASK


def rotate_left(value: int, shift: int) -> int:
    value &= U64_MASK
    return ((value << shift) | (value >> (64 - shift))) & U64_MASK


# =========================
# Seed derivation / hashing
# =========================


def derive_seed(base_seed: int, input_value: int) -> bytes:
    """Mix ``base_seed`` and ``input_value`` into a 32-byte RNG seed.

    Equal inputs always produce equal seeds; the multiplicative mix spreads
    sequential inputs far apart. The eight bytes of the mixed word repeat four
    times to fill the seed.
    """

    combined = wrapping_mul(wrapping_add(base_seed & U64_MASK, input_value & U64_MASK), SEED_MIX)
    return expand_seed(combined)


def expand_seed(word: int) -> bytes:
    return (word & U64_MASK).to_bytes(8, "little") * 4


def splitmix64(value: int) -> int:
    h = wrapping_mul(value & U64_MASK, GOLDEN_GAMMA)
    h = wrapping_mul(h ^ (h >> 30), _SPLITMIX_M1)
    h = wrapping_mul(h ^ (h >> 27), _SPLITMIX_M2)
    return h ^ (h >> 31)


def fast_random(seed: int, input_value: int) -> float:
    """SplitMix64 draw in ``[0, 1)`` keyed by ``(seed, input_value)``."""

    h = splitmix64(wrapping_add(seed & U64_MASK, input_value & U64_MASK))
    # Top 24 bits give an exact float32 mantissa.
    return (h >> 40) / 16777216.0


def fast_random_batch(seed: int, start_input: int, out) -> None:
    """Fill ``out`` with ``fast_random(seed, start_input + i)``.

    Vectorised with numpy ``uint64`` arithmetic, which wraps on overflow in the
    same way as the scalar path.
    """

    count = len(out)
    if count == 0:
        return
    with np.errstate(over="ignore"):
        base = np.uint64(wrapping_add(seed & U64_MASK, start_input & U64_MASK))
        h = base + np.arange(count, dtype=np.uint64)
        h = h * np.uint64(GOLDEN_GAMMA)
        h = (h ^ (h >> np.uint64(30))) * np.uint64(_SPLITMIX_M1)
        h = (h ^ (h >> np.uint64(27))) * np.uint64(_SPLITMIX_M2)
        h = h ^ (h >> np.uint64(31))
    values = (h >> np.uint64(40)).astype(RAW_DTYPE) / 16777216.0
    if isinstance(out, np.ndarray):
        out[:] = values
    else:
        for index, value in enumerate(values):
            out[index] = float(value)


# =========================
# Harmonic helpers
# =========================


def harmonic_phase(omega: float, t: float, phase: float) -> float:
    """Return ``omega * t + phase`` wrapped to ``[0, TAU)``."""

    return (omega * t + phase) % TAU


def harmonic_sin_cos(omega: float, t: float, phase: float) -> tuple[float, float]:
    angle = harmonic_phase(omega, t, phase)
    return math.sin(angle), math.cos(angle)


# =========================
# Bézier curves
# =========================

_NEWTON_ITERATIONS = 8
_BISECTION_ITERATIONS = 20
_EPSILON = 1e-6
_DERIVATIVE_FLOOR = 1e-9


def bezier_x(t: float, x1: float, x2: float) -> float:
    """X coordinate of the unit cubic with ``P0 = (0, 0)`` and ``P3 = (1, 1)``."""

    mt = 1.0 - t
    return 3.0 * mt * mt * t * x1 + 3.0 * mt * t * t * x2 + t * t * t


def bezier_y(t: float, y1: float, y2: float) -> float:
    mt = 1.0 - t
    return 3.0 * mt * mt * t * y1 + 3.0 * mt * t * t * y2 + t * t * t


def bezier_x_derivative(t: float, x1: float, x2: float) -> float:
    mt = 1.0 - t
    return 3.0 * mt * mt * x1 + 6.0 * mt * t * (x2 - x1) + 3.0 * t * t * (1.0 - x2)


def solve_bezier(t: float, x1: float, y1: float, x2: float, y2: float) -> float:
    """Evaluate a CSS-style cubic-bezier easing curve at progress ``t``.

    Solves ``bezier_x(u) == t`` with Newton iterations and falls back to
    bisection when the derivative is too flat, then returns ``bezier_y(u)``.
    """

    t = finite_or(t, 0.0)
    x1 = clamp(finite_or(x1, 0.0), 0.0, 1.0)
    x2 = clamp(finite_or(x2, 1.0), 0.0, 1.0)
    y1 = finite_or(y1, 0.0)
    y2 = finite_or(y2, 1.0)
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0
    if abs(x1 - y1) < _EPSILON and abs(x2 - y2) < _EPSILON:
        return t

    u = t
    for _ in range(_NEWTON_ITERATIONS):
        error = bezier_x(u, x1, x2) - t
        if abs(error) < _EPSILON:
            return bezier_y(u, y1, y2)
        derivative = bezier_x_derivative(u, x1, x2)
        if abs(derivative) < _DERIVATIVE_FLOOR:
            break
        u = clamp(u - error / derivative, 0.0, 1.0)

    lo, hi = 0.0, 1.0
    u = t
    for _ in range(_BISECTION_ITERATIONS):
        x = bezier_x(u, x1, x2)
        if abs(x - t) < _EPSILON:
            break
        if x < t:
            lo = u
        else:
            hi = u
        u = (lo + hi) * 0.5
    return bezier_y(u, y1, y2)


def quadratic_bezier(t: float, p0: float, p1: float, p2: float) -> float:
    t = clamp(finite_or(t, 0.0), 0.0, 1.0)
    mt = 1.0 - t
    return mt * mt * p0 + 2.0 * mt * t * p1 + t * t * p2


# =========================
# CPU features
# =========================


@dataclass(frozen=True, slots=True)
class CpuFeatures:
    avx2: bool = False
    avx: bool = False
    sse4_2: bool = False
    fma: bool = False


@lru_cache(maxsize=1)
def detect_cpu_features() -> CpuFeatures:
    """Report SIMD capabilities from numpy's dispatch table, cached per process.

    The table is numpy's private ``_multiarray_umath.__cpu_features__``
    (``numpy._core`` from 2.0, ``numpy.core`` before). It is not public API,
    so when neither import works every flag reads ``False``.
    """

    table: dict[str, bool] = {}
    try:
        from numpy._core._multiarray_umath import __cpu_features__ as table
    except ImportError:
        try:
            from numpy.core._multiarray_umath import __cpu_features__ as table
        except ImportError:
            table = {}
    return CpuFeatures(
        avx2=bool(table.get("AVX2", False)),
        avx=bool(table.get("AVX", False)),
        sse4_2=bool(table.get("SSE42", False)),
        fma=bool(table.get("FMA3", False)),
    )


def has_avx2() -> bool:
    return detect_cpu_features().avx2


def has_fma() -> bool:
    return detect_cpu_features().fma


__all__ = [
    "CpuFeatures",
    "GOLDEN_GAMMA",
    "RAW_DTYPE",
    "SEED_MIX",
    "TAU",
    "U64_MASK",
    "U64_MAX",
    "bezier_x",
    "bezier_x_derivative",
    "bezier_y",
    "clamp",
    "derive_seed",
    "detect_cpu_features",
    "expand_seed",
    "fast_random",
    "fast_random_batch",
    "finite_or",
    "finite_or_clamp",
    "finite_or_f64",
    "finite_or_min",
    "harmonic_phase",
    "harmonic_sin_cos",
    "has_avx2",
    "has_fma",
    "is_finite",
    "quadratic_bezier",
    "rotate_left",
    "solve_bezier",
    "splitmix64",
    "to_u64",
    "wrapping_add",
    "wrapping_mul",
]
