"""
Tests for the top-level public API (siteid_reconciler/__init__.py).
Ensures __version__, __all__, and facade re-exports are present.
"""

from __future__ import annotations

# Expected top-level __all__ (must match siteid_reconciler/__init__.py exactly).
EXPECTED_TOP_LEVEL_ALL = {"__version__", "core", "pipeline", "providers"}


def test_top_level_has_version():
    import siteid_reconciler as sr

    assert isinstance(sr.__version__, str)
    assert sr.__version__ == "0.1.0"


def test_top_level_all_is_exact():
    import siteid_reconciler as sr

    assert set(sr.__all__) == EXPECTED_TOP_LEVEL_ALL
    for name in sr.__all__:
        assert hasattr(sr, name), f"siteid_reconciler missing {name}"


def test_facades_export_what_they_declare():
    from siteid_reconciler import core, pipeline, providers

    for mod in (core, pipeline, providers):
        for name in mod.__all__:
            assert hasattr(mod, name), f"{mod.__name__} missing {name}"

