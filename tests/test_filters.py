import math
import threading

import pytest

from mixed_signals.core import SignalRange
from mixed_signals.filters import (
    FRAC_1_SQRT_2,
    Biquad,
    BiquadCoefficients,
    BiquadMode,
    Clipper,
    ClipMode,
    LowPass,
    Svf,
    SvfMode,
    one_pole_alpha,
)
from mixed_signals.generators import Constant, Ramp, Sine

SR = 48000.0


def _run(node, count=4000, sample_rate=SR):
    value = 0.0
    for i in range(1, count + 1):
        value = node.sample(i / sample_rate)
    return value


def test_one_pole_alpha():
    assert one_pole_alpha(1000.0, SR) == pytest.approx(1.0 - math.exp(-math.tau * 1000.0 / SR))
    assert one_pole_alpha(1000.0, 0.0) == 1.0
    assert one_pole_alpha(-5.0, SR) == 0.0
    assert 0.0 <= one_pole_alpha(1e12, SR) <= 1.0


def test_lowpass_converges_to_dc():
    assert _run(LowPass(Constant(0.8), 1000.0, SR)) == pytest.approx(0.8, abs=1e-6)


def test_lowpass_first_sample_advances_from_zero():
    node = LowPass(Constant(1.0), 1000.0, SR)
    assert node.sample(0.0) == pytest.approx(node.alpha)
    assert LowPass.with_alpha(Constant(1.0), 0.25).sample(0.5) == 0.25
    assert LowPass.with_alpha(Constant(1.0), 7.0).alpha == 1.0


@pytest.mark.parametrize(
    "mode,expected",
    [
        (BiquadMode.LOW_PASS, 1.0),
        (BiquadMode.HIGH_PASS, 0.0),
        (BiquadMode.BAND_PASS, 0.0),
        (BiquadMode.NOTCH, 1.0),
    ],
)
def test_biquad_dc_response(mode, expected):
    node = Biquad(Constant(1.0), mode, 1000.0, 1.0, SR)
    assert _run(node) == pytest.approx(expected, abs=1e-6)


def test_biquad_constructors():
    assert Biquad.lowpass(Constant(1.0), 500.0, SR).q == FRAC_1_SQRT_2
    assert Biquad.highpass(Constant(1.0), 500.0, SR).mode is BiquadMode.HIGH_PASS
    assert Biquad.bandpass(Constant(1.0), 500.0, 2.0, SR).q == 2.0
    assert Biquad.notch(Constant(1.0), 500.0, 2.0, SR).mode is BiquadMode.NOTCH
    assert Biquad(Constant(1.0), "band_pass").mode is BiquadMode.BAND_PASS
    with pytest.raises(ValueError):
        Biquad(Constant(1.0), "shelf")


def test_biquad_coefficients_stay_finite_for_extreme_cutoffs():
    for cutoff in (0.0, -10.0, 1e9, math.nan):
        coeffs = BiquadCoefficients.design(BiquadMode.LOW_PASS, cutoff, 0.0, SR)
        assert all(math.isfinite(c) for c in (coeffs.b0, coeffs.b1, coeffs.b2, coeffs.a1, coeffs.a2))


def test_filters_accept_huge_sample_rates():
    for mode in BiquadMode:
        coeffs = BiquadCoefficients.design(mode, 1e308, 1.0, 1.7e308)
        assert all(math.isfinite(c) for c in (coeffs.b0, coeffs.b1, coeffs.b2, coeffs.a1, coeffs.a2))
    assert one_pole_alpha(1e308, 1.7e308) == pytest.approx(1.0 - math.exp(-math.tau * (1e308 / 1.7e308)))
    node = Svf.lowpass_fixed(Sine(3.0), 1e308, 1.0, 1.7e308)
    assert all(math.isfinite(node.sample(i * 0.01)) for i in range(1, 200))


@pytest.mark.parametrize(
    "factory,expected",
    [(Svf.lowpass_fixed, 1.0), (Svf.highpass_fixed, 0.0), (Svf.bandpass_fixed, 0.0)],
    ids=["low", "high", "band"],
)
def test_svf_dc_response(factory, expected):
    node = factory(Constant(1.0), 1000.0, FRAC_1_SQRT_2, SR)
    assert _run(node, 8000) == pytest.approx(expected, abs=0.01)


def test_svf_parameters_are_clamped():
    node = Svf(Constant(1.0), Constant(1e9), 0.1, -1.0, "high_pass")
    assert node.q == 0.5
    assert node.sample_rate == SR
    assert node.mode is SvfMode.HIGH_PASS
    assert node._prepare(0.0, None) == pytest.approx(SR * 0.49)
    assert Svf.lowpass(Constant(1.0), Constant(1.0), 1.0, SR)._prepare(0.0, None) == 20.0


def test_svf_modulated_cutoff_stays_finite():
    cutoff = Sine(5.0, 4000.0, 5000.0)
    node = Svf.bandpass(Sine(440.0), cutoff, 2.0, SR)
    values = [node.sample(i / SR) for i in range(1, 2000)]
    assert all(math.isfinite(value) for value in values)


@pytest.mark.parametrize(
    "node",
    [
        LowPass(Ramp(0.0, 1.0), 200.0, SR),
        Biquad(Ramp(0.0, 1.0), BiquadMode.LOW_PASS, 200.0, FRAC_1_SQRT_2, SR),
        Svf.lowpass_fixed(Ramp(0.0, 1.0), 200.0, 1.0, SR),
        Svf.bandpass_fixed(Ramp(0.0, 1.0), 200.0, 1.0, SR),
    ],
    ids=["one-pole", "biquad", "svf-low", "svf-band"],
)
def test_repeated_time_returns_cached_output(node):
    for i in range(1, 50):
        node.sample(i / 1000.0)
    last = node.sample(0.05)
    assert node.sample(0.05) == last
    assert node.sample(0.05) == last


@pytest.mark.parametrize(
    "node",
    [
        LowPass(Ramp(0.0, 1.0), 200.0, SR),
        Biquad.highpass(Ramp(0.0, 1.0), 200.0, SR),
        Svf.highpass_fixed(Ramp(0.0, 1.0), 200.0, 1.0, SR),
    ],
    ids=["one-pole", "biquad", "svf"],
)
def test_seeking_backwards_resets_and_passes_input(node):
    for i in range(1, 50):
        node.sample(i / 1000.0)
    assert node.sample(0.01) == pytest.approx(0.01)


def test_lowpass_after_seek_restarts_from_input():
    node = LowPass(Ramp(0.0, 1.0), 200.0, SR)
    for i in range(1, 20):
        node.sample(i / 100.0)
    assert node.sample(0.1) == pytest.approx(0.1)
    expected = node.alpha * 0.11 + (1.0 - node.alpha) * 0.1
    assert node.sample(0.11) == pytest.approx(expected)


def test_reset_forgets_history():
    node = LowPass(Constant(1.0), 1000.0, SR)
    _run(node, 100)
    node.reset()
    assert node.sample(5.0) == pytest.approx(node.alpha)


def test_non_finite_time_is_treated_as_zero():
    node = Biquad.lowpass(Constant(1.0), 1000.0, SR)
    first = node.sample(math.nan)
    assert math.isfinite(first)
    assert node.sample(0.0) == first


def test_filters_survive_concurrent_sampling():
    node = LowPass(Sine(3.0), 50.0, 1000.0)
    errors = []

    def worker(offset):
        try:
            for i in range(500):
                value = node.sample((i + offset) / 1000.0)
                assert math.isfinite(value)
        except AssertionError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(k * 7,)) for k in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert errors == []


def test_hard_clipper():
    assert Clipper(Constant(2.0)).sample(0.0) == 1.0
    assert Clipper.asymmetric(Constant(-2.0), 0.5, -0.25).sample(0.0) == -0.25
    assert Clipper.symmetric(Constant(0.3), -0.5).sample(0.0) == 0.3
    assert Clipper.symmetric(Sine(), 0.5).output_range() == SignalRange(-0.5, 0.5)
    assert Clipper(Constant(2.0)).output_range() == SignalRange(1.0, 1.0)


def test_soft_clipper():
    node = Clipper.soft_symmetric(Constant(2.0), 0.5)
    assert node.sample(0.0) == pytest.approx(0.5 + 0.5 * (1.0 - math.exp(-3.0)), abs=1e-4)
    assert node.sample(0.0) == pytest.approx(0.9751, abs=1e-4)
    assert Clipper.soft_symmetric(Constant(-2.0), 0.5).sample(0.0) == pytest.approx(-0.9751, abs=1e-4)
    assert Clipper.soft_symmetric(Constant(0.2), 0.5).sample(0.0) == 0.2
    assert Clipper.soft(Constant(3.0), 1.2, -1.0).sample(0.0) == 1.2
    assert Clipper(Constant(1.0), 0.5, -0.5, "soft").mode is ClipMode.SOFT
    assert Clipper.soft_symmetric(Sine(3.0, 4.0), 0.5).output_range() == SignalRange(-1.0, 1.0)
