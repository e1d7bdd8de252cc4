"""
Special token handling for tokenizers.

Provides the special token listing and the stop-token lookup used to build
generation stop sets. This is a mixin class used by Tokenizer.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Any

from .._logging import scoped_logger
from ..exceptions import EngineError, ValidationError
from ._bindings import call_tokenizer_list_special_tokens

logger = scoped_logger("tokenizer")


class SpecialTokensMixin:
    """
    Special token methods for Tokenizer.

    Requires the following attributes on the implementing class:
    - _lib: the engine library
    - _lock: threading.RLock serializing calls on the handle
    - _handle: property returning the live handle or raising StateError
    - token_to_id: Callable[[str], int | None]
    """

    # Type hints for attributes provided by Tokenizer
    _lib: Any
    _lock: threading.RLock

    @property
    def _handle(self) -> int:
        """Get the internal handle (provided by Tokenizer)."""
        ...

    def token_to_id(self, token: str) -> int | None:
        """Get the ID of a token string (provided by Tokenizer)."""
        ...

    def special_tokens(self) -> list[str]:
        """
        All tokens the vocabulary marks as special.

        Returns
        -------
            Token strings in engine order. The engine sorts and de-duplicates
            them, so the list is stable across calls.

        Example:
            >>> tokenizer.special_tokens()
            ['<bos>', '<eos>', '<pad>', '<unk>']
        """
        with self._lock:
            return call_tokenizer_list_special_tokens(self._lib, self._handle)

    def is_special_token(self, token: str) -> bool:
        """Check whether ``token`` is one of the vocabulary's special tokens."""
        return token in self.special_tokens()

    def stop_token_ids(
        self, candidates: Iterable[str], *, strict: bool = False
    ) -> list[int]:
        """
        Resolve candidate stop strings to token IDs.

        Each candidate is looked up in the vocabulary and its ID is kept only
        if found. Order follows ``candidates``.

        By default a candidate whose lookup fails (engine error, or a string
        that cannot cross the C boundary) is skipped and logged at DEBUG, so a
        single bad candidate never prevents building a stop set.

        Args:
            candidates: Strings such as ``"<|im_end|>"`` or ``"</s>"``.
            strict: Re-raise the first lookup failure instead of skipping.

        Returns
        -------
            IDs of the candidates present in the vocabulary.

        Raises
        ------
            StateError: If the tokenizer is closed. Never skipped.
            EngineError: If ``strict`` and a lookup fails.
            ValidationError: If ``strict`` and a candidate is rejected.

        Example:
            >>> tokenizer.stop_token_ids(["<eos>", "not-a-real-token"])
            [1]
        """
        ids = []
        with self._lock:
            self._handle  # noqa: B018 - raise StateError before any lookup
            for candidate in candidates:
                try:
                    token_id = self.token_to_id(candidate)
                except (EngineError, ValidationError) as exc:
                    if strict:
                        raise
                    logger.debug(
                        "Skipping stop token candidate",
                        extra={"candidate": repr(candidate), "error": str(exc)},
                    )
                    continue
                if token_id is not None:
                    ids.append(token_id)
        return ids
