"""Optional file trace of signal-graph construction."""
from __future__ import annotations

import threading
from pathlib import Path

__all__ = [
    "build_tracing_enabled",
    "enable_build_tracing",
    "log_build_event",
    "set_build_log_path",
]


_TRACE_BUILDS = False
_LOG_PATH = Path("logs/signal_build.log")
_LOG_LOCK = threading.Lock()


def enable_build_tracing(enabled: bool) -> None:
    """Enable or disable the per-node build trace."""

    global _TRACE_BUILDS
    _TRACE_BUILDS = bool(enabled)


def build_tracing_enabled() -> bool:
    """Return ``True`` when build tracing is enabled."""

    return _TRACE_BUILDS


def set_build_log_path(path: str | Path) -> Path:
    """Redirect the trace to ``path`` and return the previous location."""

    global _LOG_PATH
    with _LOG_LOCK:
        previous = _LOG_PATH
        _LOG_PATH = Path(path)
    return previous


def log_build_event(message: str) -> None:
    """Append ``message`` to the build log when tracing is enabled."""

    if not _TRACE_BUILDS:
        return
    try:
        with _LOG_LOCK:
            _LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
            with _LOG_PATH.open("a", encoding="utf-8") as handle:
                handle.write(f"{message}\n")
    except OSError:
        return
