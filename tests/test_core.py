import math

import numpy as np
import pytest

from mixed_signals.core import (
    BIPOLAR,
    UNIT,
    Fn1,
    Fn2,
    NormalizedFrom,
    Phase,
    PhaseKind,
    SignalContext,
    SignalRange,
    bipolar_to_unipolar,
    fract,
    remap_range,
    unipolar_to_bipolar,
)
from mixed_signals.generators import Constant, Ramp, Sine
from mixed_signals.utils import RAW_DTYPE


def test_signal_range_normalises_bounds():
    assert SignalRange(3.0, -1.0) == SignalRange(-1.0, 3.0)
    assert SignalRange(math.nan, 2.0) == UNIT
    assert SignalRange(0.0, math.inf) == UNIT
    assert SignalRange.UNIT is UNIT
    assert SignalRange.BIPOLAR is BIPOLAR


def test_signal_range_helpers():
    r = SignalRange(-2.0, 6.0)
    assert r.center() == 2.0
    assert r.width() == 8.0
    assert r.contains(6.0) and not r.contains(6.1)
    assert r.clamp_value(10.0) == 6.0
    assert r.remap_to(2.0, UNIT) == pytest.approx(0.5)


def test_remap_range_degenerate_source_maps_to_centre():
    assert remap_range(5.0, SignalRange(1.0, 1.0), BIPOLAR) == 0.0
    assert remap_range(0.0, BIPOLAR, UNIT) == pytest.approx(0.5)


def test_bipolar_helpers():
    assert unipolar_to_bipolar(0.0) == -1.0
    assert unipolar_to_bipolar(1.0) == 1.0
    assert bipolar_to_unipolar(-1.0) == 0.0
    assert bipolar_to_unipolar(unipolar_to_bipolar(0.3)) == pytest.approx(0.3)


def test_context_sanitises_fields():
    ctx = SignalContext(
        frame=-5,
        seed=7,
        phase_t=2.0,
        loop_t=math.nan,
        absolute_t=-3.0,
        char_index=-2,
    )
    assert ctx.frame == 0
    assert ctx.seed == 7
    assert ctx.phase_t == 1.0
    assert ctx.loop_t == 0.0
    assert ctx.absolute_t == 0.0
    assert ctx.char_index == 0


def test_context_constructors():
    ctx = SignalContext.new(3, 9)
    assert (ctx.frame, ctx.seed) == (3, 9)
    sized = ctx.with_dimensions(80, 24)
    assert (sized.width, sized.height) == (80, 24)
    assert (ctx.width, ctx.height) == (0, 0)
    assert sized.with_char_index(4).char_index == 4

    phased = SignalContext.for_phase(Phase.START, 0.5, 2)
    assert phased.phase == Phase.START
    assert phased.phase_t == 0.5
    assert SignalContext.for_loop(0.25, 1).loop_t == 0.25

    full = SignalContext.full(Phase.END, 0.1, 0.2, 12.0, 6)
    assert full.phase.kind is PhaseKind.END
    assert full.absolute_t == 12.0
    assert full.frame == 6


def test_custom_phase_code_is_a_byte():
    assert Phase.custom(300).code == 44
    assert Phase.custom(3).kind is PhaseKind.CUSTOM


def test_sample_into_uses_absolute_times():
    ramp = Ramp(0.0, 10.0, 10.0)
    out = [0.0] * 4
    ramp.sample_into(1.0, 0.5, out)
    assert out == [1.0, 1.5, 2.0, 2.5]


def test_sample_vec_returns_buffer():
    values = Ramp(0.0, 10.0, 10.0).sample_vec(0.0, 0.25, 5)
    assert isinstance(values, np.ndarray)
    assert values.dtype == RAW_DTYPE
    np.testing.assert_allclose(values, [0.0, 0.25, 0.5, 0.75, 1.0])
    assert Sine().sample_vec(0.0, 0.1, 0).shape == (0,)


def test_sample_with_context_into_passes_context():
    node = Fn2(lambda t, ctx: ctx.frame / 10.0)
    out = np.zeros(3, dtype=RAW_DTYPE)
    node.sample_with_context_into(0.0, 0.1, SignalContext(frame=3), out)
    np.testing.assert_allclose(out, [0.3, 0.3, 0.3])
    assert node.sample(0.0) == 0.0


def test_function_nodes_clamp_and_sanitise():
    assert Fn1(lambda t: 5.0).sample(0.0) == 1.0
    assert Fn1(lambda t: -5.0).sample(0.0) == 0.0
    assert Fn1(lambda t: math.nan).sample(0.0) == 0.0
    assert Fn1(lambda t: t).sample(0.4) == 0.4


def test_combinators():
    a = Constant(0.3)
    b = Constant(0.4)
    assert a.add(b).sample(0.0) == pytest.approx(0.7)
    assert a.multiply(b).sample(0.0) == pytest.approx(0.12)
    assert a.scale(2.0).sample(0.0) == pytest.approx(0.6)
    assert a.mix(b, 0.5).sample(0.0) == pytest.approx(0.35)
    assert a.map(lambda v: v * 3.0).sample(0.0) == pytest.approx(0.9)
    assert a.invert().sample(0.0) == pytest.approx(-0.3)
    assert a.invert().invert().sample(0.0) == pytest.approx(0.3)
    assert Sine().normalized().sample(0.25) == pytest.approx(1.0)
    assert Constant(5.0).normalized_from(SignalRange(0.0, 10.0)).sample(0.0) == 0.5


def test_normalized_from_clamps():
    node = NormalizedFrom(Constant(20.0), SignalRange(0.0, 10.0))
    assert node.sample(0.0) == 1.0
    assert node.output_range() == UNIT


def test_fract_is_euclidean():
    assert fract(-0.25) == 0.75
    assert fract(2.5) == 0.5
    assert 0.0 <= fract(-1e-18) < 1.0
    assert fract(1e308) == 0.0
    assert fract(math.inf) == 0.0
    assert fract(-math.inf) == 0.0
    assert fract(math.nan) == 0.0
