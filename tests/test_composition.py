import math

import pytest

from mixed_signals.composition import Add, FrequencyMod, Mix, Multiply, VcaCentered
from mixed_signals.core import BIPOLAR, UNIT, SignalRange
from mixed_signals.generators import Constant, Ramp, Sine, Triangle
from mixed_signals.noise import PerlinNoise

GRID = [i * 0.037 for i in range(60)]


def test_add_constants():
    assert Add(Constant(0.25), Constant(1.5)).sample(3.0) == 1.75
    assert Add(Sine(), Constant(2.0)).output_range() == SignalRange(1.0, 3.0)


def test_multiply_by_zero():
    for x in (Sine(3.0), PerlinNoise(4), Ramp(-5.0, 5.0)):
        node = Multiply(Constant(0.0), x)
        assert all(node.sample(t) == 0.0 for t in GRID)


def test_multiply_range_uses_all_corners():
    node = Multiply(Sine(), Constant(-2.0))
    assert node.output_range() == SignalRange(-2.0, 2.0)
    assert Multiply(Ramp(1.0, 2.0), Ramp(-3.0, 4.0)).output_range() == SignalRange(-6.0, 8.0)


def test_mix_endpoints_and_average():
    x, y = Sine(1.3), Triangle(0.7)
    for t in GRID:
        assert Mix(x, y, 0.0).sample(t) == x.sample(t)
        assert Mix(x, y, 1.0).sample(t) == y.sample(t)
        assert Mix.equal(x, y).sample(t) == pytest.approx((x.sample(t) + y.sample(t)) / 2.0)


def test_mix_blend_sanitising():
    assert Mix(Constant(0.0), Constant(1.0), math.nan).blend == 0.5
    assert Mix(Constant(0.0), Constant(1.0), 4.0).blend == 1.0
    assert Mix(Ramp(0.0, 1.0), Ramp(2.0, 4.0), 0.5).output_range() == SignalRange(1.0, 2.5)


def test_frequency_mod_zero_depth_is_identity():
    carrier = Sine(2.0)
    node = FrequencyMod(carrier, Sine(7.0), 0.0, 2.0)
    for t in GRID:
        assert node.sample(t) == carrier.sample(t)


def test_frequency_mod_bypass_and_shift():
    carrier = Sine(1.0)
    assert FrequencyMod(carrier, Constant(1.0), 1.0, 0.0).sample(0.3) == carrier.sample(0.3)
    assert FrequencyMod(carrier, Constant(1.0), math.nan, 1.0).sample(0.3) == carrier.sample(0.3)

    # A modulator at 1.0 shifts time by depth / (2 pi f).
    node = FrequencyMod.simple(carrier, Constant(1.0), math.pi / 2.0)
    assert node.sample(0.0) == pytest.approx(carrier.sample(0.25))
    assert node.output_range() == BIPOLAR


def test_vca_centered():
    assert VcaCentered(Constant(1.0), Constant(0.0)).sample(0.0) == 0.5
    assert VcaCentered(Constant(1.0), Constant(1.0)).sample(0.0) == 1.0
    assert VcaCentered(Constant(0.2), Constant(0.5)).sample(0.0) == pytest.approx(0.35)
    assert VcaCentered(Constant(5.0), Constant(2.0)).sample(0.0) == 1.0
    assert VcaCentered(Sine(), Constant(1.0)).output_range() == UNIT
