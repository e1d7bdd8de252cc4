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
"""

from .exceptions import (
    EngineAllocationError,
    EngineError,
    LibraryNotFoundError,
    LoadError,
    StateError,
    TemplateError,
    TokbridgeError,
    ValidationError,
)

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
