"""
Engine library loading, error channel, and foreign-buffer ownership.

Justification: Every foreign call in tokbridge goes through the helpers here.
They own the three pieces of boundary discipline that must not be repeated
ad hoc in callers:

- locating the shared library and declaring its signatures (``get_lib``),
- reading the engine's process-wide last-error slot under the same lock that
  covered the failing call, and mapping status codes to exceptions (``check``),
- copying foreign-allocated outputs into Python values and releasing them
  exactly once (``take_string``, ``take_id_array``, ``take_string_array``).

Environment::

    TOKBRIDGE_LIB_PATH=/full/path/to/libhf_tokenizer.so
    TOKBRIDGE_LIB_DIR=/directory/containing/the/library
"""

import ctypes
import ctypes.util
import os
import sys
import threading
import weakref
from pathlib import Path
from typing import Any

from ._logging import scoped_logger
from ._native import REQUIRED_SYMBOLS, setup_signatures
from .exceptions import (
    EngineAllocationError,
    EngineError,
    LibraryNotFoundError,
    ValidationError,
)

logger = scoped_logger("ffi")

# =============================================================================
# Status Codes
# =============================================================================

STATUS_OK = 0
STATUS_NULL_ARGUMENT = -1
STATUS_ALLOCATION_FAILED = -2
STATUS_OPERATION_FAILED = -3

# status: (exception class, string code)
ERROR_MAP: dict[int, tuple[type[EngineError], str]] = {
    STATUS_NULL_ARGUMENT: (EngineError, "ENGINE_NULL_ARGUMENT"),
    STATUS_ALLOCATION_FAILED: (EngineAllocationError, "ENGINE_ALLOCATION_FAILED"),
    STATUS_OPERATION_FAILED: (EngineError, "ENGINE_OPERATION_FAILED"),
}

# =============================================================================
# Library Loading
# =============================================================================

_LIB_BASENAME = "hf_tokenizer"

_lib: Any = None
_lib_guard = threading.Lock()


def library_filename(platform: str | None = None) -> str:
    """Get the platform-specific engine library file name."""
    platform = platform or sys.platform
    if platform == "win32":
        return f"{_LIB_BASENAME}.dll"
    if platform == "darwin":
        return f"lib{_LIB_BASENAME}.dylib"
    return f"lib{_LIB_BASENAME}.so"


def candidate_paths() -> list[str]:
    """List library locations in resolution order.

    1. ``TOKBRIDGE_LIB_PATH``
    2. ``TOKBRIDGE_LIB_DIR`` joined with the platform file name
    3. the package directory (library bundled at build time)
    4. the system loader search path
    """
    filename = library_filename()
    candidates = []

    lib_path = os.environ.get("TOKBRIDGE_LIB_PATH")
    if lib_path:
        candidates.append(lib_path)

    lib_dir = os.environ.get("TOKBRIDGE_LIB_DIR")
    if lib_dir:
        candidates.append(str(Path(lib_dir) / filename))

    candidates.append(str(Path(__file__).parent / filename))

    system = ctypes.util.find_library(_LIB_BASENAME)
    if system:
        candidates.append(system)

    return candidates


def load_library(path: str | os.PathLike) -> ctypes.CDLL:
    """Load an engine library from ``path`` and declare its signatures.

    Raises
    ------
        LibraryNotFoundError: If the file cannot be loaded or does not export
            the tokenizer ABI.
    """
    path = os.fspath(path)
    try:
        lib = ctypes.CDLL(path)
    except OSError as exc:
        raise LibraryNotFoundError(
            f"Cannot load engine library '{path}': {exc}",
            details={"path": path},
        ) from exc

    missing = setup_signatures(lib)
    missing_required = [name for name in missing if name in REQUIRED_SYMBOLS]
    if missing_required:
        raise LibraryNotFoundError(
            f"'{path}' does not export the tokenizer ABI "
            f"(missing: {', '.join(missing_required)})",
            code="LIBRARY_ABI_MISMATCH",
            details={"path": path, "missing": missing_required},
        )
    logger.debug("Engine library loaded", extra={"path": path, "missing_optional": missing})
    return lib


def get_lib() -> ctypes.CDLL:
    """Get the process-wide engine library, loading it on first use.

    Candidates are tried in ``candidate_paths()`` order. One that exists but
    cannot be loaded (wrong architecture, missing symbols) is recorded in
    ``details["failures"]`` and the next candidate is tried.

    Raises
    ------
        LibraryNotFoundError: If no candidate location holds a loadable library.
    """
    global _lib
    if _lib is not None:
        return _lib

    with _lib_guard:
        if _lib is not None:
            return _lib

        tried = []
        failures = {}
        last_error = None
        for candidate in candidate_paths():
            tried.append(candidate)
            # Bare names from find_library are resolved by the system loader
            if os.path.dirname(candidate) and not os.path.exists(candidate):
                continue
            try:
                _lib = load_library(candidate)
            except LibraryNotFoundError as exc:
                logger.debug(
                    "Skipping unusable engine library",
                    extra={"path": candidate, "error": str(exc)},
                )
                failures[candidate] = str(exc)
                last_error = exc
                continue
            return _lib

        if failures:
            message = (
                "No usable engine library. Rejected: "
                + "; ".join(failures.values())
            )
        else:
            message = (
                "Engine library not found. Set TOKBRIDGE_LIB_PATH to the library file "
                f"or TOKBRIDGE_LIB_DIR to its directory (looked for {library_filename()})."
            )
        raise LibraryNotFoundError(
            message, details={"tried": tried, "failures": failures}
        ) from last_error


# =============================================================================
# Error Channel
# =============================================================================

_channel_locks: "weakref.WeakKeyDictionary[Any, threading.RLock]" = weakref.WeakKeyDictionary()
_channel_guard = threading.Lock()


def error_channel(lib: Any) -> threading.RLock:
    """Get the lock that serializes foreign calls on ``lib`` with their error read.

    The engine keeps one last-error slot per process. A failing call and the
    read of its message must happen under this lock, or a concurrent failure on
    another thread may overwrite the message in between.
    """
    with _channel_guard:
        lock = _channel_locks.get(lib)
        if lock is None:
            lock = threading.RLock()
            _channel_locks[lib] = lock
        return lock


def get_last_error(lib: Any) -> str | None:
    """Copy the engine's last-error message, or None if the slot is empty."""
    raw = lib.hf_last_error_message()
    if not raw:
        return None
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


def clear_error(lib: Any) -> None:
    """Empty the engine's last-error slot."""
    lib.hf_clear_last_error()


def take_last_error(lib: Any) -> str | None:
    """Copy the last-error message and clear the slot."""
    with error_channel(lib):
        message = get_last_error(lib)
        clear_error(lib)
    return message


def format_error(operation: str, message: str | None) -> str:
    """Combine an operation name and an engine message."""
    return f"{operation}: {message or 'unknown error'}"


def check(
    lib: Any,
    status: int,
    operation: str,
    *,
    error_class: type[EngineError] | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Raise if ``status`` reports failure.

    Must be called while holding ``error_channel(lib)``, directly after the
    foreign call that returned ``status``.

    Args:
        lib: Library the call was made on.
        status: Value returned by the foreign call.
        operation: Name attributed to the failure (e.g., "encode").
        error_class: Class to raise instead of EngineError. Allocation
            failures always raise EngineAllocationError.
        details: Extra structured context merged into the exception details.

    Raises
    ------
        EngineError: For any non-zero status.
    """
    if status == STATUS_OK:
        return

    engine_message = get_last_error(lib)
    message = format_error(operation, engine_message)
    error_details = {"operation": operation, "engine_message": engine_message, "status": status}
    if details:
        error_details.update(details)

    mapped = ERROR_MAP.get(status)
    if mapped is None:
        cls, code = (error_class or EngineError), "UNMAPPED_ERROR"
    else:
        cls, code = mapped
        if error_class is not None and cls is not EngineAllocationError:
            cls = error_class

    logger.debug(
        "Engine call failed",
        extra={"operation": operation, "status": status, "error": engine_message},
    )
    raise cls(message, code=code, details=error_details, original_code=status)


# =============================================================================
# Foreign Buffer Ownership
# =============================================================================
#
# Each helper receives an output slot filled by a successful foreign call,
# copies its contents into Python objects, and releases the foreign buffer
# exactly once, even if copying fails. A null slot means nothing was
# allocated and nothing is released.


def take_string(lib: Any, out_str: ctypes.c_void_p) -> str:
    """Copy and release a NUL-terminated string returned through ``char**``."""
    address = out_str.value
    if not address:
        return ""
    try:
        return ctypes.string_at(address).decode("utf-8", errors="replace")
    finally:
        lib.hf_string_free(out_str)


def take_id_array(lib: Any, ids_ptr: Any, length: int) -> list[int]:
    """Copy and release a ``uint32_t`` array returned through ``uint32_t**``."""
    if not ids_ptr:
        return []
    try:
        return ids_ptr[:length]
    finally:
        lib.hf_free_ptr(ctypes.cast(ids_ptr, ctypes.c_void_p))


def take_string_array(lib: Any, arr: Any, length: int) -> list[str]:
    """Copy and release a ``char**`` array whose elements are also foreign-owned."""
    if not arr:
        return []
    try:
        return [(arr[i] or b"").decode("utf-8", errors="replace") for i in range(length)]
    finally:
        lib.hf_tok_free_string_array(arr, length)


def to_c_string(value: str, what: str = "text") -> bytes:
    """Encode a Python string for a ``const char*`` argument.

    Raises
    ------
        ValidationError: If the string contains NUL, which the C side would
            treat as the end of the string.
    """
    if not isinstance(value, str):
        raise ValidationError(
            f"{what} must be str, got {type(value).__name__}",
            details={"param": what, "type": type(value).__name__},
        )
    encoded = value.encode("utf-8", errors="surrogatepass")
    if b"\x00" in encoded:
        raise ValidationError(
            f"{what} must not contain NUL characters",
            details={"param": what},
        )
    return encoded
