"""Offline rendering of signal graphs into sample buffers and files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Mapping

import numpy as np

from .config import RenderConfig
from .core import Signal, SignalContext
from .utils import RAW_DTYPE

logger = logging.getLogger(__name__)


def frame_count(sample_rate: float, duration: float) -> int:
    """Number of samples covering ``duration`` seconds (at least one)."""

    return max(1, int(round(duration * sample_rate)))


def render_signal(
    signal: Signal,
    sample_rate: float,
    duration: float,
    start: float = 0.0,
    context: SignalContext | None = None,
) -> np.ndarray:
    """Sample ``signal`` at ``start + i / sample_rate`` into a new buffer."""

    if not sample_rate > 0.0:
        raise ValueError("sample_rate must be positive")
    frames = frame_count(sample_rate, duration)
    dt = 1.0 / sample_rate
    buffer = np.zeros(frames, dtype=RAW_DTYPE)
    if context is None:
        signal.sample_into(start, dt, buffer)
    else:
        signal.sample_with_context_into(start, dt, context, buffer)
    return buffer


def render_configuration(config: RenderConfig) -> Dict[str, np.ndarray]:
    """Build and render every configured signal, in configuration order."""

    context = None if config.context.is_default() else config.context.to_context()
    buffers: Dict[str, np.ndarray] = {}
    for name, spec in config.signals.items():
        node = spec.build()
        if config.normalized:
            node = node.normalized()
        buffers[name] = render_signal(node, config.sample_rate, config.duration, config.start, context)
        logger.debug("Rendered %s (%s): %d frames", name, spec.type, buffers[name].shape[0])
    return buffers


def _stack(buffers: Mapping[str, np.ndarray]) -> np.ndarray:
    if not buffers:
        raise ValueError("no buffers to write")
    lengths = {buffer.shape[0] for buffer in buffers.values()}
    if len(lengths) != 1:
        raise ValueError("all buffers must have the same length")
    return np.column_stack([np.asarray(buffer, dtype=RAW_DTYPE) for buffer in buffers.values()])


def write_output(
    path: str | Path,
    buffers: Mapping[str, np.ndarray],
    sample_rate: float,
    start: float = 0.0,
) -> Path:
    """Write rendered buffers to ``path``.

    ``.csv`` files get a ``time`` column plus one column per signal. Every
    other suffix receives raw little-endian float32 frames, interleaved by
    signal, with a ``<path>.json`` sidecar describing the layout.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    frames = _stack(buffers)
    names = list(buffers)
    if target.suffix.lower() == ".csv":
        times = start + np.arange(frames.shape[0], dtype=RAW_DTYPE) / sample_rate
        table = np.column_stack([times, frames])
        np.savetxt(
            target,
            table,
            delimiter=",",
            header=",".join(["time", *names]),
            comments="",
            fmt="%.9g",
        )
    else:
        frames.astype("<f4").tofile(target)
        meta = {
            "sample_rate": float(sample_rate),
            "frames": int(frames.shape[0]),
            "signals": names,
            "dtype": "float32le",
        }
        sidecar = target.with_name(target.name + ".json")
        with open(sidecar, "w", encoding="utf-8") as fh:
            json.dump(meta, fh, indent=2)
    logger.info("Wrote %d frame(s) for %d signal(s) to %s", frames.shape[0], len(names), target)
    return target


__all__ = ["frame_count", "render_configuration", "render_signal", "write_output"]
