"""
C signatures for the hf_tokenizer engine ABI.

Every exported symbol used by tokbridge is declared here with explicit
``argtypes``/``restype``. Missing argtypes let ctypes pass 64-bit pointers as
C ``int`` and corrupt handles, so no symbol is called before it is declared.

Output strings are declared as ``c_void_p`` rather than ``c_char_p``: a
``c_char_p`` result is copied into ``bytes`` by ctypes and the original address,
which the matching release call needs, is lost. The one exception is
``hf_last_error_message``: its buffer is borrowed (never released by the
caller), so the implicit copy is exactly what is wanted.
"""

import ctypes
from typing import Any

c_uint32_p = ctypes.POINTER(ctypes.c_uint32)
c_char_p_p = ctypes.POINTER(ctypes.c_char_p)

# name: (argtypes, restype)
SIGNATURES: dict[str, tuple[list[Any], Any]] = {
    # Error channel
    "hf_last_error_message": ([], ctypes.c_char_p),
    "hf_clear_last_error": ([], None),
    # Release calls
    "hf_free_ptr": ([ctypes.c_void_p], None),
    "hf_string_free": ([ctypes.c_void_p], None),
    "hf_tok_free_string_array": ([c_char_p_p, ctypes.c_size_t], None),
    # Handle lifecycle
    "hf_tok_load_from_file": ([ctypes.c_char_p], ctypes.c_void_p),
    "hf_tok_free": ([ctypes.c_void_p], None),
    # Encode / decode
    "hf_tok_encode": (
        [
            ctypes.c_void_p,
            ctypes.c_char_p,
            ctypes.c_int,
            ctypes.POINTER(c_uint32_p),
            ctypes.POINTER(ctypes.c_size_t),
        ],
        ctypes.c_int,
    ),
    "hf_tok_decode": (
        [
            ctypes.c_void_p,
            c_uint32_p,
            ctypes.c_size_t,
            ctypes.c_int,
            ctypes.POINTER(ctypes.c_void_p),
        ],
        ctypes.c_int,
    ),
    "hf_tok_decode_id": (
        [ctypes.c_void_p, ctypes.c_uint32, ctypes.c_int, ctypes.POINTER(ctypes.c_void_p)],
        ctypes.c_int,
    ),
    # Vocabulary queries
    "hf_tok_token_to_id": (
        [
            ctypes.c_void_p,
            ctypes.c_char_p,
            c_uint32_p,
            ctypes.POINTER(ctypes.c_int),
        ],
        ctypes.c_int,
    ),
    "hf_tok_id_to_token": (
        [
            ctypes.c_void_p,
            ctypes.c_uint32,
            ctypes.POINTER(ctypes.c_void_p),
            ctypes.POINTER(ctypes.c_int),
        ],
        ctypes.c_int,
    ),
    "hf_tok_list_special_tokens": (
        [ctypes.c_void_p, ctypes.POINTER(c_char_p_p), ctypes.POINTER(ctypes.c_size_t)],
        ctypes.c_int,
    ),
    # Chat template
    "hf_chat_apply_template_from_dir": (
        [ctypes.c_char_p, ctypes.c_char_p, ctypes.c_int, ctypes.POINTER(ctypes.c_void_p)],
        ctypes.c_int,
    ),
}

# Symbols without which no Tokenizer can work
REQUIRED_SYMBOLS = (
    "hf_last_error_message",
    "hf_clear_last_error",
    "hf_free_ptr",
    "hf_string_free",
    "hf_tok_free_string_array",
    "hf_tok_load_from_file",
    "hf_tok_free",
    "hf_tok_encode",
    "hf_tok_decode",
    "hf_tok_decode_id",
    "hf_tok_token_to_id",
    "hf_tok_list_special_tokens",
)


def setup_signatures(lib: ctypes.CDLL) -> list[str]:
    """Declare argtypes/restype for every known symbol on ``lib``.

    Returns
    -------
        Names of known symbols the library does not export.
    """
    missing = []
    for name, (argtypes, restype) in SIGNATURES.items():
        try:
            fn = getattr(lib, name)
        except AttributeError:
            missing.append(name)
            continue
        fn.argtypes = argtypes
        fn.restype = restype
    return missing
