"""
Global pytest fixtures for tokbridge tests.

This module provides:
- Fault handling for native crashes
- Real engine library discovery for ``requires_engine`` tests
- Isolation of the process-wide library cache

=============================================================================
Skip Policy
=============================================================================

Most tests run against ``FakeEngine`` (tests/fixtures/engine.py), an
in-process double of the engine library, and need nothing installed.

Tests marked ``requires_engine`` load the real shared library. They are
skipped, not failed, when no library can be found: set TOKBRIDGE_LIB_PATH or
TOKBRIDGE_LIB_DIR to run them.
"""

import faulthandler

import pytest

from tokbridge import _bindings
from tokbridge.exceptions import LibraryNotFoundError

# Enable faulthandler to trace native crashes (segfaults)
faulthandler.enable()


# =============================================================================
# Real Engine Library
# =============================================================================


def _find_engine_lib():
    """Load the real engine library, or return None if unavailable."""
    try:
        return _bindings.get_lib()
    except LibraryNotFoundError:
        return None


@pytest.fixture(scope="session")
def engine_lib():
    """The real engine library (skips the test if not available)."""
    lib = _find_engine_lib()
    if lib is None:
        pytest.skip("engine library not found (set TOKBRIDGE_LIB_PATH)")
    return lib


def pytest_collection_modifyitems(config, items):
    """Skip requires_engine tests up front when no library is available."""
    if not any(item.get_closest_marker("requires_engine") for item in items):
        return
    if _find_engine_lib() is not None:
        return
    skip = pytest.mark.skip(reason="engine library not found (set TOKBRIDGE_LIB_PATH)")
    for item in items:
        if item.get_closest_marker("requires_engine"):
            item.add_marker(skip)


# =============================================================================
# Library Cache Isolation
# =============================================================================


@pytest.fixture
def reset_lib_cache(monkeypatch):
    """Clear the cached process-wide library for the duration of a test."""
    monkeypatch.setattr(_bindings, "_lib", None)
