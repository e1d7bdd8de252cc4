"""
Text encoding and decoding.

Provides the Tokenizer class, which owns one engine tokenizer handle and
converts text to token IDs and back.
"""

import operator
import os
import threading
from collections.abc import Iterable
from typing import Any

from .._bindings import get_lib, to_c_string
from .._logging import scoped_logger
from ..exceptions import StateError, ValidationError
from ._bindings import (
    UINT32_MAX,
    call_tokenizer_decode,
    call_tokenizer_decode_id,
    call_tokenizer_encode,
    call_tokenizer_free,
    call_tokenizer_id_to_token,
    call_tokenizer_load,
    call_tokenizer_token_to_id,
)
from .special_tokens import SpecialTokensMixin

logger = scoped_logger("tokenizer")

_LOADED = "loaded"
_CLOSED = "closed"
_MOVED = "moved"


def _coerce_id(value: Any) -> int:
    """Validate one token ID for a ``uint32_t`` argument."""
    if isinstance(value, bool):
        raise ValidationError(
            "token id must be an integer, got bool", details={"param": "ids", "value": value}
        )
    try:
        token_id = operator.index(value)
    except TypeError:
        raise ValidationError(
            f"token id must be an integer, got {type(value).__name__}",
            details={"param": "ids", "type": type(value).__name__},
        ) from None
    if not 0 <= token_id <= UINT32_MAX:
        raise ValidationError(
            f"token id {token_id} is outside the unsigned 32-bit range",
            details={"param": "ids", "value": token_id},
        )
    return token_id


class Tokenizer(SpecialTokensMixin):
    """
    Text-to-token encoder and token-to-text decoder.

    Owns exactly one engine handle. The handle is released once, by
    ``close()``, by leaving a ``with`` block, or when the object is collected.
    Ownership can be transferred with ``move()`` or ``assign()`` but never
    shared: copying and pickling raise ``TypeError``.

    Calls on one instance are serialized by a per-instance lock, so an
    instance may be shared between threads.

    Attributes
    ----------
    path : str
        Path of the tokenizer definition given at load.
    closed : bool
        True once the handle was released or moved away.

    Example:
        >>> with Tokenizer("tokenizer.json") as tokenizer:
        ...     ids = tokenizer.encode("Hello world")
        ...     text = tokenizer.decode(ids)
    """

    __slots__ = ("_lib", "_ptr", "_path", "_lock", "_state")

    def __init__(self, path: str | os.PathLike, *, lib: Any = None):
        """
        Load a tokenizer definition.

        Args:
            path: Path to a tokenizer definition file (e.g., ``tokenizer.json``).
            lib: Engine library to use. Defaults to the process-wide library
                resolved from ``TOKBRIDGE_LIB_PATH`` / ``TOKBRIDGE_LIB_DIR``.

        Raises
        ------
            LoadError: If the file is missing, unreadable, or malformed.
            LibraryNotFoundError: If no engine library can be loaded.
            ValidationError: If the path contains NUL characters.
        """
        self._ptr = None
        self._state = _CLOSED
        self._lock = threading.RLock()
        self._path = os.fspath(path)
        path_bytes = to_c_string(self._path, "path")
        self._lib = lib if lib is not None else get_lib()

        logger.debug("Loading tokenizer", extra={"path": self._path})
        self._ptr = call_tokenizer_load(self._lib, path_bytes)
        self._state = _LOADED
        logger.debug("Tokenizer loaded", extra={"path": self._path})

    @property
    def _handle(self) -> int:
        """Get the internal handle, raising if closed or moved."""
        if self._ptr is None:
            if self._state == _MOVED:
                raise StateError("Tokenizer was moved", code="STATE_MOVED")
            raise StateError("Tokenizer is closed", code="STATE_CLOSED")
        return self._ptr

    def _free_handle(self):
        """Free the internal handle if still owned."""
        if getattr(self, "_ptr", None):
            call_tokenizer_free(self._lib, self._ptr)
            self._ptr = None
            self._state = _CLOSED
            logger.debug("Tokenizer closed", extra={"path": self._path})

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """
        Release the engine handle.

        After calling close(), the tokenizer cannot be used. Safe to call
        multiple times (idempotent), and a no-op on a moved-from tokenizer.
        """
        with self._lock:
            self._free_handle()

    def move(self) -> "Tokenizer":
        """
        Transfer the handle to a new Tokenizer.

        The returned tokenizer owns the handle. This tokenizer is left empty:
        every operation raises ``StateError`` and ``close()`` does nothing.

        Raises
        ------
            StateError: If this tokenizer is closed or already moved.
        """
        with self._lock:
            ptr = self._handle
            moved = self._adopt(self._lib, self._path, ptr)
            self._ptr = None
            self._state = _MOVED
        logger.debug("Tokenizer moved", extra={"path": self._path})
        return moved

    def assign(self, other: "Tokenizer") -> None:
        """
        Take over ``other``'s handle, releasing this tokenizer's own first.

        ``other`` is left empty, as after ``move()``. Assigning a tokenizer to
        itself does nothing.

        Raises
        ------
            TypeError: If ``other`` is not a Tokenizer.
            StateError: If ``other`` is closed or moved.
        """
        if not isinstance(other, Tokenizer):
            raise TypeError(f"can only assign a Tokenizer, got {type(other).__name__}")
        if other is self:
            return
        # Fixed acquisition order so two opposite assigns cannot deadlock
        first, second = sorted((self, other), key=id)
        with first._lock, second._lock:
            ptr = other._handle
            self._free_handle()
            self._lib = other._lib
            self._path = other._path
            self._ptr = ptr
            self._state = _LOADED
            other._ptr = None
            other._state = _MOVED
        logger.debug("Tokenizer assigned", extra={"path": self._path})

    @classmethod
    def _adopt(cls, lib: Any, path: str, ptr: int) -> "Tokenizer":
        """Wrap an already-owned handle without loading."""
        instance = cls.__new__(cls)
        instance._lib = lib
        instance._path = path
        instance._lock = threading.RLock()
        instance._ptr = ptr
        instance._state = _LOADED
        return instance

    @property
    def closed(self) -> bool:
        """True if this tokenizer no longer owns a handle."""
        return self._ptr is None

    @property
    def path(self) -> str:
        """Path of the tokenizer definition given at load."""
        return self._path

    def __enter__(self) -> "Tokenizer":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit, calls close()."""
        self.close()

    def __del__(self):
        try:
            self._free_handle()
        except Exception:
            pass

    def __copy__(self):
        raise TypeError("Tokenizer cannot be copied; use move() to transfer ownership")

    def __deepcopy__(self, memo: dict) -> "Tokenizer":
        raise TypeError("Tokenizer cannot be copied; use move() to transfer ownership")

    def __reduce__(self):
        raise TypeError("Tokenizer cannot be pickled")

    def __repr__(self) -> str:
        state = "" if self._ptr is not None else f", {self._state}"
        return f"Tokenizer({self._path!r}{state})"

    # =========================================================================
    # Encoding / Decoding
    # =========================================================================

    def encode(self, text: str, add_special: bool = True) -> list[int]:
        """
        Convert text to token IDs.

        Args:
            text: Input text. Must not contain NUL characters.
            add_special: Add the engine's boundary tokens (e.g., BOS/EOS).

        Returns
        -------
            Token IDs in order. Empty text may give an empty list.

        Raises
        ------
            EngineError: If the engine fails to encode.
            ValidationError: If text is not a str or contains NUL.
            StateError: If the tokenizer is closed.

        Example:
            >>> tokenizer.encode("Hello")
            [9707]
        """
        text_bytes = to_c_string(text)
        with self._lock:
            return call_tokenizer_encode(self._lib, self._handle, text_bytes, add_special)

    def decode(self, ids: Iterable[int], skip_special: bool = True) -> str:
        """
        Convert token IDs back to text.

        Args:
            ids: Token IDs. Anything iterable of integers, including numpy
                integer arrays.
            skip_special: Omit special tokens from the output.

        Returns
        -------
            Decoded text. An empty sequence gives ``""``.

        Raises
        ------
            EngineError: If an ID is not in the vocabulary.
            ValidationError: If an ID is not an integer in the uint32 range.
            StateError: If the tokenizer is closed.
        """
        if isinstance(ids, (str, bytes)):
            raise ValidationError(
                f"ids must be a sequence of integers, got {type(ids).__name__}",
                details={"param": "ids", "type": type(ids).__name__},
            )
        token_list = [_coerce_id(value) for value in ids]
        with self._lock:
            return call_tokenizer_decode(self._lib, self._handle, token_list, skip_special)

    def decode_one(self, token_id: int, skip_special: bool = True) -> str:
        """
        Decode a single token ID.

        Uses the engine's single-token entry point rather than ``decode``.

        Raises
        ------
            EngineError: If the ID is not in the vocabulary.
            ValidationError: If the ID is not an integer in the uint32 range.
            StateError: If the tokenizer is closed.
        """
        token_id = _coerce_id(token_id)
        with self._lock:
            return call_tokenizer_decode_id(self._lib, self._handle, token_id, skip_special)

    # =========================================================================
    # Vocabulary
    # =========================================================================

    def lookup(self, token: str) -> tuple[bool, int]:
        """
        Look up a token string.

        Returns
        -------
            ``(found, token_id)``. ``token_id`` is 0 when not found.

        Raises
        ------
            EngineError: If the lookup call itself fails.
        """
        token_bytes = to_c_string(token, "token")
        with self._lock:
            return call_tokenizer_token_to_id(self._lib, self._handle, token_bytes)

    def token_to_id(self, token: str) -> int | None:
        """
        Get the ID of a token string.

        Returns
        -------
            The token ID, or None if the token is not in the vocabulary.

        Example:
            >>> tokenizer.token_to_id("<eos>")
            1
        """
        found, token_id = self.lookup(token)
        return token_id if found else None

    def id_to_token(self, token_id: int) -> str | None:
        """
        Get the string form of a token ID.

        Returns
        -------
            The token string, or None if the ID is not in the vocabulary.
        """
        token_id = _coerce_id(token_id)
        with self._lock:
            return call_tokenizer_id_to_token(self._lib, self._handle, token_id)

    def __contains__(self, token: object) -> bool:
        """Check if a string exists as a single token in the vocabulary."""
        if not isinstance(token, str):
            return False
        return self.token_to_id(token) is not None

    def convert_ids_to_tokens(self, ids: list[int]) -> list[str | None]:
        """Convert a list of token IDs to their string representations.

        Args:
            ids: Token IDs to convert.
        """
        return [self.id_to_token(token_id) for token_id in ids]

    def convert_tokens_to_ids(self, tokens: list[str]) -> list[int | None]:
        """Convert a list of token strings to their IDs.

        Args:
            tokens: Token strings to convert.
        """
        return [self.token_to_id(token) for token in tokens]
