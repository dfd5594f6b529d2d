import importlib

import pytest

import mixed_signals

MODULES = [
    "mixed_signals.cli",
    "mixed_signals.composition",
    "mixed_signals.config",
    "mixed_signals.core",
    "mixed_signals.diagnostics",
    "mixed_signals.envelope",
    "mixed_signals.errors",
    "mixed_signals.filters",
    "mixed_signals.generators",
    "mixed_signals.noise",
    "mixed_signals.noise_helpers",
    "mixed_signals.processing",
    "mixed_signals.render",
    "mixed_signals.spec",
    "mixed_signals.stochastic",
    "mixed_signals.utils",
    "mixed_signals.__main__",
]


@pytest.mark.parametrize("name", MODULES)
def test_module_imports_and_exports(name):
    module = importlib.import_module(name)
    for exported in getattr(module, "__all__", []):
        assert hasattr(module, exported), f"{name} is missing {exported}"


def test_package_exports_resolve():
    for name in mixed_signals.__all__:
        assert getattr(mixed_signals, name) is not None
    assert mixed_signals.Sine is importlib.import_module("mixed_signals.generators").Sine


def test_registry_entries_have_builders():
    from mixed_signals.spec import SIGNAL_TYPES

    assert len(SIGNAL_TYPES) >= 40
    for name, entry in SIGNAL_TYPES.items():
        assert callable(entry.builder), name
