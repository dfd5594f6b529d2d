import math

import pytest

from mixed_signals.envelope import Adsr, Impact, LinearEnvelope


def test_adsr_scenario():
    env = Adsr(0.2, 0.2, 0.5, 0.2)
    expected = {0.0: 0.0, 0.1: 0.5, 0.2: 1.0, 0.5: 0.5, 1.0: 0.0}
    for t, value in expected.items():
        assert env.sample(t) == pytest.approx(value, abs=1e-3)


def test_adsr_decay_and_release_slopes():
    env = Adsr(0.2, 0.2, 0.5, 0.2)
    assert env.sample(0.3) == pytest.approx(0.75)
    assert env.sample(0.9) == pytest.approx(0.25)


def test_adsr_shrinks_overflowing_segments():
    env = Adsr(0.6, 0.6, 0.5, 0.8)
    assert env.attack + env.decay + env.release == pytest.approx(1.0)
    assert env.attack == pytest.approx(0.3)
    assert env.release == pytest.approx(0.4)


def test_adsr_zero_segments_and_clamping():
    env = Adsr(0.0, 0.0, 0.4, 0.0)
    assert env.sample(0.0) == pytest.approx(0.4)
    assert env.sample(1.0) == 0.0
    assert Adsr().sample(-2.0) == 0.0
    assert math.isfinite(Adsr().sample(math.nan))


def test_adsr_peak_scales_and_clamps():
    env = Adsr(0.2, 0.2, 0.5, 0.2).with_peak(0.5)
    assert env.sample(0.2) == pytest.approx(0.5)
    assert env.sample(0.5) == pytest.approx(0.25)
    loud = Adsr(0.2, 0.2, 0.5, 0.2, peak=3.0)
    assert loud.sample(0.2) == 1.0


def test_linear_envelope():
    env = LinearEnvelope(0.2, 0.2)
    assert env.sample(0.1) == pytest.approx(0.5)
    assert env.sample(0.5) == 1.0
    assert env.sample(0.9) == pytest.approx(0.5)
    assert env.sample(1.0) == pytest.approx(0.0, abs=1e-9)
    sym = LinearEnvelope.symmetric(0.8)
    assert sym.attack == pytest.approx(0.5)
    assert sym.release == pytest.approx(0.5)
    assert LinearEnvelope(0.2, 0.2).with_peak(0.6).sample(0.5) == pytest.approx(0.6)


def test_impact_decays_exponentially():
    hit = Impact(1.0, 3.0)
    assert hit.sample(0.0) == 1.0
    assert hit.sample(1.0) == pytest.approx(math.exp(-3.0))
    assert hit.sample(-1.0) == 1.0
    assert Impact.with_intensity(0.5).sample(0.0) == 0.5
    assert Impact(2.0).sample(0.0) == 1.0
    assert Impact(1.0, -4.0).sample(10.0) == 1.0
