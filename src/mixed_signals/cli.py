"""Command line entry point for rendering signal graphs."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from .config import DEFAULT_CONFIG_PATH, RenderConfig, load_configuration, parse_configuration
from .diagnostics import enable_build_tracing, set_build_log_path
from .errors import MixedSignalsError
from .render import render_configuration, write_output

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render deterministic signal graphs")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to configuration file")
    parser.add_argument(
        "--spec",
        help="Inline JSON signal description; replaces the configured signals with one named 'signal'",
    )
    parser.add_argument("--signal", help="Render only the named signal from the configuration")
    parser.add_argument("--sample-rate", type=float, help="Override the configured sample rate (Hz)")
    parser.add_argument("--duration", type=float, help="Override the configured duration (seconds)")
    parser.add_argument("--start", type=float, help="Override the configured start time (seconds)")
    parser.add_argument(
        "--normalized",
        action="store_true",
        default=None,
        help="Remap every signal's declared range onto [0, 1] before rendering",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help=(
            "Optional path to write rendered samples. Paths ending in .csv are"
            " written as text; other suffixes receive raw float32 frames"
            " (little-endian) with a JSON sidecar."
        ),
    )
    parser.add_argument(
        "--trace-build",
        nargs="?",
        const="",
        metavar="PATH",
        help="Append one line per built node to logs/signal_build.log (or PATH)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    return parser


def _resolve_config(args: argparse.Namespace) -> RenderConfig:
    if args.spec is not None:
        raw = json.loads(args.spec)
        base = {"signals": {"signal": raw}}
        if args.config is not None and Path(args.config).exists():
            with open(args.config, "r", encoding="utf8") as fh:
                base = {**json.load(fh), **base}
        config = parse_configuration(base)
    else:
        config = load_configuration(args.config)

    if args.signal is not None:
        if args.signal not in config.signals:
            raise KeyError(f"Unknown signal '{args.signal}'; available: {', '.join(config.signals)}")
        config = replace(config, signals={args.signal: config.signals[args.signal]})
    if args.sample_rate is not None:
        if not args.sample_rate > 0.0:
            raise ValueError("--sample-rate must be positive")
        config = replace(config, sample_rate=args.sample_rate)
    if args.duration is not None:
        if not args.duration >= 0.0:
            raise ValueError("--duration must be non-negative")
        config = replace(config, duration=args.duration)
    if args.start is not None:
        config = replace(config, start=args.start)
    if args.normalized:
        config = replace(config, normalized=True)
    return config


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.trace_build is not None:
        if args.trace_build:
            set_build_log_path(args.trace_build)
        enable_build_tracing(True)

    try:
        config = _resolve_config(args)
        buffers = render_configuration(config)
    except (OSError, ValueError, KeyError, TypeError, MixedSignalsError) as exc:
        message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
        print(f"error: {message}", file=sys.stderr)
        return 2
    finally:
        if args.trace_build is not None:
            enable_build_tracing(False)

    frames = next(iter(buffers.values())).shape[0]
    print(f"Rendered {frames} samples for {len(buffers)} signal(s)")
    for name, buffer in buffers.items():
        print(
            f"  {name}: min={float(buffer.min()):.6f} max={float(buffer.max()):.6f}"
            f" mean={float(buffer.mean()):.6f}"
        )

    if args.output is not None:
        try:
            path = write_output(args.output, buffers, config.sample_rate, config.start)
        except OSError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        print(f"Wrote {path}")
    return 0


__all__ = ["build_parser", "main"]
