import math

import pytest

from mixed_signals.core import UNIT, SignalContext, SignalRange
from mixed_signals.stochastic import (
    CorrelatedNoise,
    FastCorrelatedNoise,
    FastPinkNoise,
    FastSeededRandom,
    GaussianNoise,
    ImpulseNoise,
    PerCharacterNoise,
    PinkNoise,
    PoissonNoise,
    SeededRandom,
    SpatialNoise,
    StudentTNoise,
    derive_spatial_seed,
)
from mixed_signals.spec import build_signal

FRAME_TIMES = [i / 60.0 for i in range(2000)]


def _mean(values):
    values = list(values)
    return sum(values) / len(values)


@pytest.mark.parametrize("cls", [SeededRandom, FastSeededRandom])
def test_seeded_random_is_unipolar_and_deterministic(cls):
    noise = cls(4)
    values = [noise.sample(i * 0.001) for i in range(1000)]
    assert all(0.0 <= value <= 1.0 for value in values)
    assert values == [noise.sample(i * 0.001) for i in range(1000)]
    assert noise.output_range() == UNIT
    assert abs(_mean(values) - 0.5) < 0.1
    assert noise.sample_with_context(0.5, SignalContext(frame=3)) != noise.sample(0.5)


def test_seeded_random_keys_on_whole_milliseconds():
    noise = SeededRandom(1)
    assert noise.sample(0.0101) == noise.sample(0.0109)


@pytest.mark.parametrize("cls", [PinkNoise, FastPinkNoise])
def test_pink_noise_mean_and_range(cls):
    noise = cls(21, 0.8, 0.3)
    values = [noise.sample(t) for t in FRAME_TIMES]
    assert abs(_mean(values) - 0.3) < 0.2
    rng = noise.output_range()
    assert all(rng.min - 1e-9 <= value <= rng.max + 1e-9 for value in values)


def test_pink_noise_context_uses_frame():
    noise = PinkNoise.with_seed(3)
    ctx = SignalContext(frame=120)
    assert noise.sample_with_context(0.0, ctx) == noise.sample(2.0)


@pytest.mark.parametrize("cls", [CorrelatedNoise, FastCorrelatedNoise])
@pytest.mark.parametrize("correlation", [1.5, -0.1, math.nan])
def test_correlated_noise_rejects_bad_correlation(cls, correlation):
    with pytest.raises(ValueError, match="correlation must be 0.0-1.0"):
        cls(1, correlation)


@pytest.mark.parametrize("cls", [CorrelatedNoise, FastCorrelatedNoise])
def test_correlated_noise_is_smooth(cls):
    noise = cls(8, 0.95)
    values = [noise.sample_with_context(0.0, SignalContext(frame=f)) for f in range(200)]
    deltas = [abs(b - a) for a, b in zip(values, values[1:])]
    assert _mean(deltas) < 0.5
    assert all(-1.0 <= value <= 1.0 for value in values)


def test_gaussian_noise_validation():
    with pytest.raises(ValueError, match="std_dev must be >= 0"):
        GaussianNoise(1, -1.0)
    with pytest.raises(ValueError, match="must be finite"):
        GaussianNoise(1, math.nan)
    with pytest.raises(ValueError, match="amplitude must be finite"):
        GaussianNoise(1, 1.0, math.inf)


def test_gaussian_noise_distribution():
    noise = GaussianNoise(5, 1.0, 1.0, 0.0)
    values = [noise.sample(i * 0.01) for i in range(1000)]
    assert all(-1.0 <= value <= 1.0 for value in values)
    assert abs(_mean(values)) < 0.2
    assert GaussianNoise(5, 0.0, 1.0, 0.25).sample(1.0) == 0.25


def test_poisson_noise_validation_and_range():
    with pytest.raises(ValueError, match="lambda must be > 0"):
        PoissonNoise(1, 0.0)
    with pytest.raises(ValueError):
        PoissonNoise(1, math.inf)
    noise = PoissonNoise(2, 4.0, 0.5, 0.5)
    values = [noise.sample(i * 0.01) for i in range(1000)]
    assert all(0.0 <= value <= 1.0 for value in values)
    assert abs(_mean(values) - 0.5) < 0.2
    assert noise.output_range() == SignalRange(0.0, 1.0)


def test_poisson_noise_beyond_sampler_limit_returns_offset():
    noise = PoissonNoise(1, 1e20, 0.5, 0.5)
    assert noise.sample(0.5) == 0.5
    assert noise.sample_with_context(0.5, SignalContext(frame=2, seed=3)) == 0.5
    assert build_signal({"type": "poisson_noise", "lambda": 1e20}).sample(0.5) == 0.0


def test_student_t_noise_validation_and_range():
    with pytest.raises(ValueError, match="degrees_of_freedom must be > 0"):
        StudentTNoise(0.0)
    with pytest.raises(ValueError, match="scale must be finite"):
        StudentTNoise(3.0, 1, math.nan)
    noise = StudentTNoise.default_audio(9)
    values = [noise.sample(i * 0.01) for i in range(1000)]
    assert all(-1.0 <= value <= 1.0 for value in values)
    assert abs(_mean(values)) < 0.2


def test_distribution_noise_is_deterministic_per_context():
    noise = GaussianNoise(3)
    ctx = SignalContext(frame=4, seed=2)
    assert noise.sample_with_context(0.3, ctx) == noise.sample_with_context(0.3, ctx)
    assert noise.sample_with_context(0.3, SignalContext()) == noise.sample(0.3)


def test_impulse_noise_rate_zero_is_constant():
    noise = ImpulseNoise(0.0, 1, amplitude=0.7)
    assert {noise.sample(i * 0.01) for i in range(500)} == {-0.7}


def test_impulse_noise_higher_rate_hits_more():
    grid = [i * 0.001 for i in range(5000)]

    def hits(rate):
        noise = ImpulseNoise.with_width(rate, 12, 0.01)
        return sum(1 for t in grid if noise.sample(t) > 0.0)

    assert hits(20.0) > hits(2.0)


def test_impulse_noise_levels_and_clamps():
    noise = ImpulseNoise(10.0, 3, impulse_width=0.05, amplitude=0.5, offset=1.0)
    levels = {noise.sample(i * 0.002) for i in range(2000)}
    assert levels <= {0.5, 1.5}
    assert ImpulseNoise(bucket_size=5.0).bucket_size == 1.0


def test_impulse_noise_with_huge_rate_stays_two_level():
    noise = ImpulseNoise(1e308, 3)
    for t in (0.0, 0.5, 1e12, 1e300):
        assert noise.sample(t) in (-1.0, 1.0)
    assert ImpulseNoise(impulse_width=0.0).impulse_width == ImpulseNoise.MIN_IMPULSE_WIDTH
    assert noise.sample(-1.0) == 0.5


def test_spatial_noise_uses_grid_position():
    noise = SpatialNoise(6, amplitude=0.5)
    cell = SignalContext().with_dimensions(3, 4)
    assert noise.sample_with_context(0.0, cell) == noise.sample_with_context(9.0, cell)
    other = SignalContext().with_dimensions(4, 3)
    assert noise.sample_with_context(0.0, cell) != noise.sample_with_context(0.0, other)
    assert noise.output_range() == SignalRange(-0.5, 0.5)
    assert abs(noise.sample(2.5)) <= 0.5


def test_derive_spatial_seed_handles_negative_coordinates():
    seed = derive_spatial_seed(7, -3, 2)
    assert len(seed) == 32
    assert seed == derive_spatial_seed(7, -3, 2)
    assert seed != derive_spatial_seed(7, 3, 2)


def test_per_character_noise_is_constant_per_index():
    noise = PerCharacterNoise(base_seed=10)
    ctx = SignalContext(char_index=5)
    assert noise.sample_with_context(0.0, ctx) == noise.sample_with_context(4.0, ctx)
    assert noise.sample_with_context(0.0, ctx) != noise.sample_with_context(
        0.0, SignalContext(char_index=6)
    )
    assert noise.sample_with_context(0.0, SignalContext(frame=5)) == noise.sample_with_context(
        0.0, ctx
    )
    assert noise.base_seed == 10
