"""Deterministic signal graphs for animation, procedural audio and stochastic textures."""

from __future__ import annotations

from .composition import Add, FrequencyMod, Mix, Multiply, VcaCentered
from .core import (
    BIPOLAR,
    UNIT,
    Fn1,
    Fn2,
    Map,
    NormalizedFrom,
    Phase,
    PhaseKind,
    Signal,
    SignalContext,
    SignalRange,
    bipolar_to_unipolar,
    remap_range,
    unipolar_to_bipolar,
)
from .envelope import Adsr, Impact, LinearEnvelope
from .errors import BuildErrorKind, MixedSignalsError, SignalBuildError, SpecError
from .filters import Biquad, BiquadMode, Clipper, ClipMode, LowPass, Svf, SvfMode
from .generators import (
    Constant,
    Keyframe,
    Keyframes,
    PhaseAccumulator,
    PhaseSine,
    Pulse,
    Ramp,
    Sawtooth,
    Sine,
    Square,
    Step,
    Triangle,
)
from .noise import PerlinNoise, WhiteNoise
from .processing import Abs, Clamp, Invert, Normalized, Quantize, Remap
from .spec import SIGNAL_TYPES, SignalOrFloat, SignalSpec, build_signal
from .stochastic import (
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
    hash_to_index,
)

__all__ = [
    "Abs",
    "Add",
    "Adsr",
    "BIPOLAR",
    "Biquad",
    "BiquadMode",
    "BuildErrorKind",
    "Clamp",
    "ClipMode",
    "Clipper",
    "Constant",
    "CorrelatedNoise",
    "FastCorrelatedNoise",
    "FastPinkNoise",
    "FastSeededRandom",
    "Fn1",
    "Fn2",
    "FrequencyMod",
    "GaussianNoise",
    "Impact",
    "ImpulseNoise",
    "Invert",
    "Keyframe",
    "Keyframes",
    "LinearEnvelope",
    "LowPass",
    "Map",
    "MixedSignalsError",
    "Mix",
    "Multiply",
    "Normalized",
    "NormalizedFrom",
    "PerCharacterNoise",
    "PerlinNoise",
    "Phase",
    "PhaseAccumulator",
    "PhaseKind",
    "PhaseSine",
    "PinkNoise",
    "PoissonNoise",
    "Pulse",
    "Quantize",
    "Ramp",
    "Remap",
    "SIGNAL_TYPES",
    "Sawtooth",
    "SeededRandom",
    "Signal",
    "SignalBuildError",
    "SignalContext",
    "SignalOrFloat",
    "SignalRange",
    "SignalSpec",
    "Sine",
    "SpatialNoise",
    "SpecError",
    "Square",
    "Step",
    "StudentTNoise",
    "Svf",
    "SvfMode",
    "Triangle",
    "UNIT",
    "VcaCentered",
    "WhiteNoise",
    "bipolar_to_unipolar",
    "build_signal",
    "hash_to_index",
    "remap_range",
    "unipolar_to_bipolar",
]
