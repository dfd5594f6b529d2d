"""Configuration loading for offline signal rendering."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

from .core import SignalContext
from .errors import SpecError
from .spec import SignalSpec

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = _REPO_ROOT / "configs" / "default.json"

DEFAULT_SAMPLE_RATE = 60.0
DEFAULT_DURATION = 1.0


@dataclass(slots=True)
class ContextConfig:
    """Evaluation context applied to every rendered signal."""

    frame: int = 0
    seed: int = 0
    width: int = 0
    height: int = 0
    char_index: int | None = None

    def is_default(self) -> bool:
        return (
            self.frame == 0
            and self.seed == 0
            and self.width == 0
            and self.height == 0
            and self.char_index is None
        )

    def to_context(self) -> SignalContext:
        return SignalContext(
            frame=self.frame,
            seed=self.seed,
            width=self.width,
            height=self.height,
            char_index=self.char_index,
        )


@dataclass(slots=True)
class RenderConfig:
    sample_rate: float = DEFAULT_SAMPLE_RATE
    duration: float = DEFAULT_DURATION
    start: float = 0.0
    normalized: bool = False
    context: ContextConfig = field(default_factory=ContextConfig)
    signals: Dict[str, SignalSpec] = field(default_factory=dict)


def _normalise_context(data: Mapping[str, Any] | None) -> ContextConfig:
    data = data or {}
    if not isinstance(data, Mapping):
        raise TypeError("context must be a mapping")
    char_index = data.get("char_index")
    return ContextConfig(
        frame=int(data.get("frame", 0)),
        seed=int(data.get("seed", 0)),
        width=int(data.get("width", 0)),
        height=int(data.get("height", 0)),
        char_index=None if char_index is None else int(char_index),
    )


def _normalise_signals(data: Any) -> Dict[str, SignalSpec]:
    if not isinstance(data, Mapping) or not data:
        raise ValueError("signals must contain at least one named signal description")
    signals: Dict[str, SignalSpec] = {}
    for name, description in data.items():
        try:
            signals[str(name)] = SignalSpec.from_dict(description)
        except SpecError as exc:
            raise SpecError(f"signals.{name}: {exc.message}", exc.signal_type) from exc
    return signals


def parse_configuration(raw: Mapping[str, Any]) -> RenderConfig:
    """Build a :class:`RenderConfig` from an already decoded mapping."""

    if not isinstance(raw, Mapping):
        raise TypeError("configuration root must be a JSON object")
    sample_rate = float(raw.get("sample_rate", DEFAULT_SAMPLE_RATE))
    if not sample_rate > 0.0:
        raise ValueError("sample_rate must be positive")
    duration = float(raw.get("duration", DEFAULT_DURATION))
    if not duration >= 0.0:
        raise ValueError("duration must be non-negative")
    config = RenderConfig(
        sample_rate=sample_rate,
        duration=duration,
        start=float(raw.get("start", 0.0)),
        normalized=bool(raw.get("normalized", False)),
        context=_normalise_context(raw.get("context")),
        signals=_normalise_signals(raw.get("signals")),
    )
    logger.debug(
        "Parsed configuration with %d signal(s) at %.3f Hz",
        len(config.signals),
        config.sample_rate,
    )
    return config


def load_configuration(path: str | Path) -> RenderConfig:
    """Load a :class:`RenderConfig` from ``path``."""

    with open(path, "r", encoding="utf8") as fh:
        raw = json.load(fh)
    logger.info("Loaded configuration from %s", path)
    return parse_configuration(raw)


__all__ = [
    "ContextConfig",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_DURATION",
    "DEFAULT_SAMPLE_RATE",
    "RenderConfig",
    "load_configuration",
    "parse_configuration",
]
