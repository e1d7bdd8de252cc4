"""
Tokbridge - Safe Python access to a native tokenizer engine.

Tokbridge loads a tokenizer engine through its C ABI and wraps it so that
Python code never handles raw pointers: every foreign buffer is copied into a
Python object and released exactly once, every engine failure becomes an
exception carrying the engine's own message, and every tokenizer handle has a
single owner that frees it.

Quick Start
-----------
    >>> from tokbridge import Tokenizer
    >>>
    >>> with Tokenizer("models/qwen/tokenizer.json") as tokenizer:
    ...     ids = tokenizer.encode("Hello world")
    ...     text = tokenizer.decode(ids)

Stop sequences for generation:

    >>> tokenizer.stop_token_ids(["<|im_end|>", "<|endoftext|>"])
    [151645, 151643]

Chat templates:

    >>> from tokbridge import apply_chat_template
    >>> prompt = apply_chat_template(
    ...     "models/qwen",
    ...     [{"role": "user", "content": "Hello!"}],
    ... )

Ownership
---------
A Tokenizer cannot be copied or pickled. Hand it to another owner with
``move()`` (or ``assign()``); the source becomes empty and raises
``StateError`` if used.

Errors
------
All exceptions derive from ``TokbridgeError``:

- `LibraryNotFoundError` - engine library missing (set TOKBRIDGE_LIB_PATH)
- `LoadError` - tokenizer definition missing or malformed
- `EngineError` - an engine call failed (``e.operation``, ``e.engine_message``)
- `StateError` - tokenizer used after close() or move()
- `ValidationError` - argument cannot cross the C boundary

Environment
-----------
- ``TOKBRIDGE_LIB_PATH`` - full path to the engine library
- ``TOKBRIDGE_LIB_DIR`` - directory containing the engine library
- ``TOKBRIDGE_LOG_LEVEL`` - trace|debug|info|warn|error|fatal|off
- ``TOKBRIDGE_LOG_FORMAT`` - json|human
"""

from tokbridge._logging import setup_logging
from tokbridge._version import __version__ as __version__
from tokbridge.exceptions import (
    EngineAllocationError,
    EngineError,
    LibraryNotFoundError,
    LoadError,
    StateError,
    TemplateError,
    TokbridgeError,
    ValidationError,
)
from tokbridge.tokenizer import ChatTemplate, Tokenizer, apply_chat_template

__all__ = [
    # Tokenizer
    "Tokenizer",
    # Template
    "ChatTemplate",
    "apply_chat_template",
    # Logging
    "setup_logging",
    # Exceptions
    "TokbridgeError",
    "LibraryNotFoundError",
    "LoadError",
    "EngineError",
    "EngineAllocationError",
    "TemplateError",
    "StateError",
    "ValidationError",
]
