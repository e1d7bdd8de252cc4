"""
Tokbridge exceptions.

This module defines the exception hierarchy for tokbridge:

    TokbridgeError (base)
    ├── LibraryNotFoundError - Engine shared library missing or unloadable
    ├── LoadError - Tokenizer definition missing, unreadable or malformed
    ├── EngineError - A foreign call reported a non-zero status
    │   ├── EngineAllocationError - The engine failed to allocate an output
    │   └── TemplateError - Chat template rendering failed
    ├── StateError - Tokenizer used after close() or move()
    └── ValidationError - Argument rejected before reaching the engine

Usage:
    try:
        tokenizer = Tokenizer("missing/tokenizer.json")
    except tokbridge.LoadError as e:
        print(f"Cannot load: {e}")

    try:
        tokenizer.decode([4_000_000])
    except tokbridge.EngineError as e:
        print(e.operation, e.engine_message)

A token that is absent from the vocabulary is not an error:
``Tokenizer.token_to_id`` returns ``None`` for it.
"""

from typing import Any

__all__ = [
    # Base
    "TokbridgeError",
    # Library
    "LibraryNotFoundError",
    # Handle
    "LoadError",
    # Engine
    "EngineError",
    "EngineAllocationError",
    "TemplateError",
    # State
    "StateError",
    # Validation
    "ValidationError",
]


class TokbridgeError(Exception):
    """
    Base exception for all tokbridge errors.

    Attributes
    ----------
    message : str
        Human-readable error description.
    code : str
        Stable, string-based error code (e.g., "LOAD_FAILED").
        Use this for programmatic error handling.
    details : dict[str, Any]
        Structured context (e.g., {"path": "...", "operation": "encode"}).
    original_code : int | None
        The raw engine status code, when one exists.
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_code = original_code

    @property
    def message(self) -> str:
        return self.args[0]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.args[0]!r}, code={self.code!r})"


# =============================================================================
# Library Errors
# =============================================================================


class LibraryNotFoundError(TokbridgeError, OSError):
    """
    The engine shared library could not be located or loaded.

    Set ``TOKBRIDGE_LIB_PATH`` to the full path of the library, or
    ``TOKBRIDGE_LIB_DIR`` to the directory that contains it. ``details["tried"]``
    lists every location that was checked.
    """

    def __init__(
        self,
        message: str,
        code: str = "LIBRARY_NOT_FOUND",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Load Errors
# =============================================================================


class LoadError(TokbridgeError, RuntimeError):
    """
    The engine refused to load a tokenizer definition.

    Raised from ``Tokenizer(path)`` when the definition file is missing,
    unreadable, or malformed. No tokenizer is constructed; there is nothing
    to close.
    """

    def __init__(
        self,
        message: str,
        code: str = "LOAD_FAILED",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Engine Errors
# =============================================================================


class EngineError(TokbridgeError, RuntimeError):
    """
    A foreign call reported failure.

    The message combines the failing operation and the engine's last-error
    message (``"decode: decode failed: ..."``). The tokenizer stays usable
    after this error.

    Attributes
    ----------
    operation : str | None
        Name of the failing operation (e.g., "encode").
    engine_message : str | None
        Copy of the engine's last-error message, if it set one.
    """

    def __init__(
        self,
        message: str,
        code: str = "ENGINE_ERROR",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)

    @property
    def operation(self) -> str | None:
        return self.details.get("operation")

    @property
    def engine_message(self) -> str | None:
        return self.details.get("engine_message")


class EngineAllocationError(EngineError, MemoryError):
    """The engine could not allocate or build an output buffer."""

    def __init__(
        self,
        message: str,
        code: str = "ENGINE_ALLOCATION_FAILED",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


class TemplateError(EngineError):
    """
    Chat template rendering failed.

    Common causes:
    - No chat template in the model directory
    - Template syntax errors
    - Messages that are not a JSON array
    """

    def __init__(
        self,
        message: str,
        code: str = "TEMPLATE_RENDER_FAILED",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# State Errors
# =============================================================================


class StateError(TokbridgeError, RuntimeError):
    """
    Invalid object state error.

    Raised when a tokenizer is used after its handle was released by
    ``close()`` or handed to another tokenizer by ``move()``.
    """

    def __init__(
        self,
        message: str,
        code: str = "STATE_ERROR",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(TokbridgeError, ValueError):
    """
    Invalid parameter value.

    Raised before any foreign call when an argument cannot be represented
    at the C boundary, e.g. text containing NUL characters or a token id
    outside the unsigned 32-bit range.

    This exception inherits from both TokbridgeError and ValueError::

        except tokbridge.TokbridgeError:  # catches all tokbridge errors
        except ValueError:                # catches validation errors
    """

    def __init__(
        self,
        message: str,
        code: str = "INVALID_ARGUMENT",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)
