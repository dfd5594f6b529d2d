# spec.py
"""Declarative signal graphs.

A :class:`SignalSpec` is a plain ``type`` plus parameter mapping that mirrors
the JSON form ``{"type": "sine", "frequency": 2.0}``. Every scalar parameter
has a default which is applied when the description is parsed, so partial
descriptions still build. Children of composite nodes are nested specs.

:data:`SIGNAL_TYPES` maps every type name to its builder; :meth:`SignalSpec.build`
walks the tree and returns the node graph.
"""

from __future__ import annotations

import copy
import logging
import math
import threading
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Callable, Dict, Mapping, Tuple

from .composition import Add, FrequencyMod, Mix, Multiply, VcaCentered
from .core import Signal, SignalContext
from .diagnostics import log_build_event
from .envelope import Adsr, Impact, LinearEnvelope
from .errors import BuildErrorKind, MixedSignalsError, SignalBuildError, SpecError
from .filters import FRAC_1_SQRT_2, Biquad, BiquadMode, Clipper, ClipMode, LowPass, Svf, SvfMode
from .generators import (
    Constant,
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
)

logger = logging.getLogger(__name__)

Builder = Callable[[Mapping[str, Any]], Signal]


@dataclass(frozen=True, slots=True)
class SignalType:
    """Registry entry: how to build one node type and which defaults it carries."""

    builder: Builder
    defaults: Mapping[str, Any] = field(default_factory=dict)
    children: Tuple[str, ...] = ()
    required: Tuple[str, ...] = ()
    error_kind: BuildErrorKind | None = None


# Parameter name blocks shared by several node types.
_OSCILLATOR = {"frequency": 1.0, "amplitude": 1.0, "offset": 0.0, "phase": 0.0}
_SEEDED = {"seed": 0, "amplitude": 1.0, "offset": 0.0}


def _oscillator(cls) -> SignalType:
    return SignalType(
        lambda p: cls(p["frequency"], p["amplitude"], p["offset"], p["phase"]),
        dict(_OSCILLATOR),
    )


def _seeded(cls) -> SignalType:
    return SignalType(lambda p: cls(p["seed"], p["amplitude"], p["offset"]), dict(_SEEDED))


def _unary(cls) -> SignalType:
    return SignalType(lambda p: cls(p["signal"]), children=("signal",))


def _binary(cls) -> SignalType:
    return SignalType(lambda p: cls(p["a"], p["b"]), children=("a", "b"))


def _correlated(cls) -> SignalType:
    return SignalType(
        lambda p: cls(p["seed"], p["correlation"], p["amplitude"], p["offset"]),
        {"seed": 0, "correlation": 0.95, "amplitude": 1.0, "offset": 0.0},
        error_kind=BuildErrorKind.CORRELATED,
    )


SIGNAL_TYPES: Dict[str, SignalType] = {
    # Oscillators
    "sine": _oscillator(Sine),
    "triangle": _oscillator(Triangle),
    "square": SignalType(
        lambda p: Square(p["frequency"], p["amplitude"], p["offset"], p["phase"], p["duty"]),
        {**_OSCILLATOR, "duty": 0.5},
    ),
    "sawtooth": SignalType(
        lambda p: Sawtooth(p["frequency"], p["amplitude"], p["offset"], p["phase"], p["inverted"]),
        {**_OSCILLATOR, "inverted": False},
    ),
    # Utility leaves
    "constant": SignalType(lambda p: Constant(p["value"]), {"value": 0.0}),
    "ramp": SignalType(
        lambda p: Ramp(p["start"], p["end"], p["duration"]),
        {"start": 0.0, "end": 1.0, "duration": 1.0},
    ),
    "step": SignalType(
        lambda p: Step(p["before"], p["after"], p["threshold"]),
        {"before": 0.0, "after": 1.0, "threshold": 0.5},
    ),
    "pulse": SignalType(
        lambda p: Pulse(p["low"], p["high"], p["start"], p["end"]),
        {"low": 0.0, "high": 1.0, "start": 0.25, "end": 0.75},
    ),
    "keyframes": SignalType(lambda p: Keyframes.from_pairs(p["keyframes"]), required=("keyframes",)),
    "phase_accumulator": SignalType(
        lambda p: PhaseAccumulator(p["frequency"], p["initial_phase"]),
        {"initial_phase": 0.0},
        children=("frequency",),
    ),
    "phase_sine": SignalType(lambda p: PhaseSine(p["phase"]), children=("phase",)),
    # Noise
    "white_noise": SignalType(
        lambda p: WhiteNoise(p["seed"], p["amplitude"], p["sample_rate"], p["offset"]),
        {"seed": 0, "amplitude": 1.0, "sample_rate": 60.0, "offset": 0.0},
    ),
    "perlin": SignalType(
        lambda p: PerlinNoise(
            p["seed"], p["scale"], p["amplitude"], p["offset"], p["octaves"], p["persistence"]
        ),
        {"seed": 0, "scale": 1.0, "amplitude": 1.0, "offset": 0.0, "octaves": 1, "persistence": 0.5},
    ),
    "seeded_random": _seeded(SeededRandom),
    "fast_seeded_random": _seeded(FastSeededRandom),
    "pink_noise": _seeded(PinkNoise),
    "fast_pink_noise": _seeded(FastPinkNoise),
    "per_character_noise": SignalType(
        lambda p: PerCharacterNoise(p["base_seed"], p["amplitude"], p["offset"]),
        {"base_seed": 0, "amplitude": 1.0, "offset": 0.0},
    ),
    "spatial_noise": SignalType(
        lambda p: SpatialNoise(p["seed"], p["frequency"], p["amplitude"]),
        {"seed": 0, "frequency": 1.0, "amplitude": 1.0},
    ),
    "gaussian_noise": SignalType(
        lambda p: GaussianNoise(p["seed"], p["std_dev"], p["amplitude"], p["offset"]),
        {"seed": 0, "std_dev": 1.0, "amplitude": 1.0, "offset": 0.0},
        error_kind=BuildErrorKind.GAUSSIAN,
    ),
    "poisson_noise": SignalType(
        lambda p: PoissonNoise(p["seed"], p["lambda"], p["amplitude"], p["offset"]),
        {"seed": 0, "lambda": 2.0, "amplitude": 1.0, "offset": 0.0},
        error_kind=BuildErrorKind.POISSON,
    ),
    "correlated_noise": _correlated(CorrelatedNoise),
    "fast_correlated_noise": _correlated(FastCorrelatedNoise),
    "student_t_noise": SignalType(
        lambda p: StudentTNoise(
            p["degrees_of_freedom"], p["seed"], p["scale"], p["amplitude"], p["offset"]
        ),
        {"seed": 0, "degrees_of_freedom": 3.0, "scale": 1.0, "amplitude": 1.0, "offset": 0.0},
        error_kind=BuildErrorKind.STUDENT_T,
    ),
    "impulse_noise": SignalType(
        lambda p: ImpulseNoise(p["rate_hz"], p["seed"], p["impulse_width"], p["bucket_size"]),
        {"seed": 0, "rate_hz": 10.0, "impulse_width": 0.001, "bucket_size": 0.1},
    ),
    # Envelopes
    "adsr": SignalType(
        lambda p: Adsr(p["attack"], p["decay"], p["sustain"], p["release"], p["peak"]),
        {"attack": 0.1, "decay": 0.1, "sustain": 0.7, "release": 0.2, "peak": 1.0},
    ),
    "impact": SignalType(
        lambda p: Impact(p["intensity"], p["decay"]),
        {"intensity": 1.0, "decay": 3.0},
    ),
    "linear_envelope": SignalType(
        lambda p: LinearEnvelope(p["attack"], p["release"], p["peak"]),
        {"attack": 0.1, "release": 0.2, "peak": 1.0},
    ),
    # Composition
    "add": _binary(Add),
    "multiply": _binary(Multiply),
    "mix": SignalType(lambda p: Mix(p["a"], p["b"], p["mix"]), {"mix": 0.5}, children=("a", "b")),
    "frequency_mod": SignalType(
        lambda p: FrequencyMod(p["carrier"], p["modulator"], p["depth"], p["carrier_freq"]),
        {"depth": 1.0, "carrier_freq": 1.0},
        children=("carrier", "modulator"),
    ),
    "vca_centered": SignalType(
        lambda p: VcaCentered(p["carrier"], p["amplitude"]),
        children=("carrier", "amplitude"),
    ),
    # Processing
    "clamp": SignalType(
        lambda p: Clamp(p["signal"], p["min"], p["max"]),
        {"min": 0.0, "max": 1.0},
        children=("signal",),
    ),
    "quantize": SignalType(
        lambda p: Quantize(p["signal"], p["levels"]), {"levels": 4}, children=("signal",)
    ),
    "remap": SignalType(
        lambda p: Remap(p["signal"], p["in_min"], p["in_max"], p["out_min"], p["out_max"]),
        {"in_min": 0.0, "in_max": 1.0, "out_min": 0.0, "out_max": 1.0},
        children=("signal",),
    ),
    "invert": _unary(Invert),
    "abs": _unary(Abs),
    "normalized": _unary(Normalized),
    # Filters
    "low_pass": SignalType(
        lambda p: LowPass(p["signal"], p["cutoff_hz"], p["sample_rate"]),
        {"cutoff_hz": 1000.0, "sample_rate": 48000.0},
        children=("signal",),
    ),
    "biquad": SignalType(
        lambda p: Biquad(
            p["signal"], BiquadMode(p["mode"]), p["cutoff_hz"], p["q"], p["sample_rate"]
        ),
        {"mode": "low_pass", "cutoff_hz": 1000.0, "q": FRAC_1_SQRT_2, "sample_rate": 48000.0},
        children=("signal",),
    ),
    "svf": SignalType(
        lambda p: Svf(p["signal"], p["cutoff"], p["q"], p["sample_rate"], SvfMode(p["mode"])),
        {"cutoff": 1000.0, "q": FRAC_1_SQRT_2, "sample_rate": 48000.0, "mode": "low_pass"},
        children=("signal", "cutoff"),
    ),
    "clipper": SignalType(
        lambda p: Clipper(p["signal"], p["pos_threshold"], p["neg_threshold"], ClipMode(p["mode"])),
        {"pos_threshold": 1.0, "neg_threshold": -1.0, "mode": "hard"},
        children=("signal",),
    ),
}

LEGACY_TYPES: Dict[str, str] = {"sum": "add", "scale": "multiply"}


def _coerce_scalar(signal_type: str, key: str, default: Any, value: Any) -> Any:
    try:
        if isinstance(default, bool):
            if not isinstance(value, (bool, int)):
                raise TypeError(f"expected a boolean, got {type(value).__name__}")
            return bool(value)
        if isinstance(default, str):
            if not isinstance(value, str):
                raise TypeError(f"expected a string, got {type(value).__name__}")
            return value.lower()
        if isinstance(value, bool) or not isinstance(value, Real):
            raise TypeError(f"expected a number, got {type(value).__name__}")
        if isinstance(default, int):
            if not math.isfinite(value):
                raise ValueError(f"expected a finite integer, got {value}")
            return int(value)
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SpecError(f"{signal_type}.{key}: {exc}", signal_type) from exc


def _parse_keyframes(signal_type: str, raw: Any) -> list[tuple[float, float]]:
    if isinstance(raw, (str, bytes)) or not hasattr(raw, "__iter__"):
        raise SpecError(f"{signal_type}.keyframes must be a list of [time, value] pairs", signal_type)
    pairs = []
    for index, item in enumerate(raw):
        if isinstance(item, Mapping):
            item = (item.get("time"), item.get("value"))
        try:
            time, value = item
            pairs.append((float(time), float(value)))
        except (TypeError, ValueError) as exc:
            raise SpecError(
                f"{signal_type}.keyframes[{index}] is not a (time, value) pair: {item!r}",
                signal_type,
            ) from exc
    return pairs


def _parse_child(signal_type: str, key: str, raw: Any) -> SignalSpec:
    if isinstance(raw, SignalSpec):
        return raw
    if isinstance(raw, Real) and not isinstance(raw, bool):
        return SignalSpec("constant", {"value": float(raw)})
    if not isinstance(raw, Mapping):
        raise SpecError(
            f"{signal_type}.{key} must be a signal description, got {type(raw).__name__}",
            signal_type,
        )
    return SignalSpec.from_dict(raw)


@dataclass(slots=True)
class SignalSpec:
    """One node of a declarative signal tree."""

    type: str
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SignalSpec:
        """Parse the JSON form, applying defaults and resolving legacy names."""

        if not isinstance(data, Mapping):
            raise SpecError(f"Signal description must be a mapping, got {type(data).__name__}")
        raw_type = data.get("type")
        if not isinstance(raw_type, str) or not raw_type:
            raise SpecError("Signal description is missing its 'type'")
        signal_type = raw_type.strip().lower()
        if signal_type in LEGACY_TYPES:
            replacement = LEGACY_TYPES[signal_type]
            logger.warning("Signal type '%s' is deprecated; building '%s'", signal_type, replacement)
            signal_type = replacement
        entry = SIGNAL_TYPES.get(signal_type)
        if entry is None:
            raise SpecError(f"Unknown signal type '{raw_type}'", raw_type)

        params: Dict[str, Any] = {}
        for key in entry.children:
            if key in data:
                params[key] = _parse_child(signal_type, key, data[key])
            elif key in entry.defaults:
                params[key] = _parse_child(signal_type, key, entry.defaults[key])
            else:
                raise SpecError(f"{signal_type} requires child '{key}'", signal_type)
        for key in entry.required:
            if key not in data:
                raise SpecError(f"{signal_type} requires '{key}'", signal_type)
            params[key] = _parse_keyframes(signal_type, data[key])
        for key, default in entry.defaults.items():
            if key in entry.children:
                continue
            value = data.get(key, default)
            params[key] = _coerce_scalar(signal_type, key, default, value)

        ignored = set(data) - set(params) - {"type"}
        if ignored:
            logger.debug("Ignoring unknown %s parameters: %s", signal_type, sorted(ignored))
        return cls(signal_type, params)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise back to the JSON form (defaults included)."""

        payload: Dict[str, Any] = {"type": self.type}
        for key, value in self.params.items():
            if isinstance(value, SignalSpec):
                payload[key] = value.to_dict()
            elif key == "keyframes":
                payload[key] = [[time, val] for time, val in value]
            else:
                payload[key] = value
        return payload

    def children(self) -> Dict[str, SignalSpec]:
        return {key: value for key, value in self.params.items() if isinstance(value, SignalSpec)}

    def build(self) -> Signal:
        """Construct the node graph, children first.

        Raises :class:`SignalBuildError` when a distribution node rejects its
        parameters and :class:`SpecError` for any other invalid parameter.
        """

        entry = SIGNAL_TYPES.get(self.type)
        if entry is None:
            raise SpecError(f"Unknown signal type '{self.type}'", self.type)
        arguments: Dict[str, Any] = dict(self.params)
        for key, child in self.children().items():
            arguments[key] = child.build()
        try:
            node = entry.builder(arguments)
        except ValueError as exc:
            if entry.error_kind is not None:
                raise SignalBuildError(entry.error_kind, str(exc), {"type": self.type}) from exc
            raise SpecError(f"{self.type} build failed: {exc}", self.type) from exc
        except KeyError as exc:
            raise SpecError(f"{self.type} is missing parameter {exc}", self.type) from exc
        logger.debug("Built %s node", self.type)
        log_build_event(f"build type={self.type} node={type(node).__name__}")
        return node


class SignalOrFloat:
    """A parameter that is either a literal number or a signal description.

    The signal form is built once, on first evaluation, and the result (or
    the build error) is cached. Copies share nothing and rebuild lazily.
    """

    __slots__ = ("_value", "_spec", "_lock", "_node", "_error", "_resolved")

    def __init__(self, value: float | SignalSpec = 0.0) -> None:
        if isinstance(value, SignalSpec):
            self._value = None
            self._spec = value
        else:
            self._value = float(value)
            self._spec = None
        self._lock = threading.Lock()
        self._node: Signal | None = None
        self._error: MixedSignalsError | None = None
        self._resolved = False

    @classmethod
    def static(cls, value: float) -> SignalOrFloat:
        return cls(float(value))

    @classmethod
    def signal(cls, spec: SignalSpec) -> SignalOrFloat:
        return cls(spec)

    @classmethod
    def from_value(cls, raw: Any) -> SignalOrFloat:
        """A JSON number becomes a literal; a JSON object becomes a spec."""

        if isinstance(raw, SignalOrFloat):
            return copy.copy(raw)
        if isinstance(raw, SignalSpec):
            return cls(raw)
        if isinstance(raw, Real) and not isinstance(raw, bool):
            return cls(float(raw))
        if isinstance(raw, Mapping):
            return cls(SignalSpec.from_dict(raw))
        raise SpecError(f"Expected a number or a signal description, got {type(raw).__name__}")

    def to_value(self) -> float | Dict[str, Any]:
        if self._spec is None:
            return self._value
        return self._spec.to_dict()

    @property
    def is_static(self) -> bool:
        return self._spec is None

    def as_static(self) -> float | None:
        return self._value

    def as_signal(self) -> SignalSpec | None:
        return self._spec

    def _resolve(self) -> Signal:
        with self._lock:
            if not self._resolved:
                try:
                    self._node = self._spec.build()
                except MixedSignalsError as exc:
                    logger.warning("Caching failed build of %s: %s", self._spec.type, exc)
                    self._error = exc
                self._resolved = True
                if self._node is not None:
                    logger.debug("Cached built %s node", self._spec.type)
        if self._error is not None:
            raise self._error
        return self._node

    def evaluate(self, t: float, ctx: SignalContext) -> float:
        """Return the literal, or sample the (lazily built) signal with ``ctx``.

        A cached build error is raised again on every call.
        """

        if self._spec is None:
            return self._value
        return self._resolve().sample_with_context(t, ctx)

    def evaluate_simple(self, t: float) -> float:
        return self.evaluate(t, SignalContext())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignalOrFloat):
            return NotImplemented
        if self._spec is None or other._spec is None:
            return self._spec is None and other._spec is None and self._value == other._value
        return self._spec == other._spec

    __hash__ = None

    def __copy__(self) -> SignalOrFloat:
        return SignalOrFloat(self._value if self._spec is None else self._spec)

    def __deepcopy__(self, memo: Dict[int, Any]) -> SignalOrFloat:
        if self._spec is None:
            return SignalOrFloat(self._value)
        return SignalOrFloat(copy.deepcopy(self._spec, memo))

    def __repr__(self) -> str:
        if self._spec is None:
            return f"SignalOrFloat.static({self._value!r})"
        return f"SignalOrFloat.signal({self._spec!r})"


def build_signal(data: Mapping[str, Any]) -> Signal:
    """Parse and build a JSON-style description in one step."""

    return SignalSpec.from_dict(data).build()


__all__ = [
    "LEGACY_TYPES",
    "SIGNAL_TYPES",
    "SignalOrFloat",
    "SignalSpec",
    "SignalType",
    "build_signal",
]
