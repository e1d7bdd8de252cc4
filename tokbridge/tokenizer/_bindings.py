"""
FFI bindings for tokenizer.

Justification: Provides C API call wrappers that handle ctypes memory management
(output slots passed by pointer, array creation for id inputs) and pair every
successful foreign allocation with its release call through the ownership
helpers in ``tokbridge._bindings``. Each wrapper performs exactly one foreign
call under the library's error-channel lock and raises on failure.
"""

import ctypes
from typing import Any

from .._bindings import (
    check,
    error_channel,
    format_error,
    get_last_error,
    take_id_array,
    take_string,
    take_string_array,
)
from .._native import c_char_p_p, c_uint32_p
from ..exceptions import EngineError, LoadError, TemplateError

UINT32_MAX = 0xFFFFFFFF


def call_tokenizer_load(lib: Any, path: bytes) -> int:
    """Call hf_tok_load_from_file and return the handle as int.

    Raises
    ------
        LoadError: If the engine returns a null handle.
    """
    with error_channel(lib):
        handle = lib.hf_tok_load_from_file(path)
        if not handle:
            error = get_last_error(lib)
            display = path.decode("utf-8", errors="replace")
            raise LoadError(
                f"Failed to load tokenizer from '{display}': "
                + format_error("load_from_file", error),
                details={"path": display, "operation": "load_from_file", "engine_message": error},
            )
    return int(handle)


def call_tokenizer_free(lib: Any, handle: int) -> None:
    """Free the tokenizer handle."""
    lib.hf_tok_free(handle)


def call_tokenizer_encode(lib: Any, handle: int, text: bytes, add_special: bool) -> list[int]:
    """Call hf_tok_encode and return the copied token ids."""
    ids_ptr = c_uint32_p()
    length = ctypes.c_size_t(0)
    with error_channel(lib):
        code = lib.hf_tok_encode(
            handle,
            text,
            1 if add_special else 0,
            ctypes.pointer(ids_ptr),
            ctypes.pointer(length),
        )
        check(lib, code, "encode")
    return take_id_array(lib, ids_ptr, length.value)


def call_tokenizer_decode(lib: Any, handle: int, ids: list[int], skip_special: bool) -> str:
    """Call hf_tok_decode and return the copied text.

    The id buffer is never null: the engine rejects a null pointer even when
    the length is zero.
    """
    num_ids = len(ids)
    arr = (ctypes.c_uint32 * max(num_ids, 1))(*ids)
    out_str = ctypes.c_void_p()
    with error_channel(lib):
        code = lib.hf_tok_decode(
            handle,
            arr,
            num_ids,
            1 if skip_special else 0,
            ctypes.pointer(out_str),
        )
        check(lib, code, "decode", details={"num_ids": num_ids})
    return take_string(lib, out_str)


def call_tokenizer_decode_id(lib: Any, handle: int, token_id: int, skip_special: bool) -> str:
    """Call hf_tok_decode_id and return the copied text."""
    out_str = ctypes.c_void_p()
    with error_channel(lib):
        code = lib.hf_tok_decode_id(
            handle,
            token_id,
            1 if skip_special else 0,
            ctypes.pointer(out_str),
        )
        check(lib, code, "decode_id", details={"token_id": token_id})
    return take_string(lib, out_str)


def call_tokenizer_token_to_id(lib: Any, handle: int, token: bytes) -> tuple[bool, int]:
    """Call hf_tok_token_to_id and return (found, token_id).

    A missing token is ``(False, 0)``, not an error.
    """
    out_id = ctypes.c_uint32(0)
    out_found = ctypes.c_int(0)
    with error_channel(lib):
        code = lib.hf_tok_token_to_id(
            handle,
            token,
            ctypes.pointer(out_id),
            ctypes.pointer(out_found),
        )
        check(lib, code, "token_to_id")
    if not out_found.value:
        return (False, 0)
    return (True, out_id.value)


def call_tokenizer_id_to_token(lib: Any, handle: int, token_id: int) -> str | None:
    """Call hf_tok_id_to_token and return the token string or None.

    Raises
    ------
        EngineError: If the library does not export the symbol or the call fails.
    """
    fn = getattr(lib, "hf_tok_id_to_token", None)
    if fn is None:
        raise EngineError(
            "id_to_token: engine library has no id-to-token lookup",
            code="SYMBOL_UNAVAILABLE",
            details={"operation": "id_to_token"},
        )

    out_str = ctypes.c_void_p()
    out_found = ctypes.c_int(0)
    with error_channel(lib):
        code = fn(
            handle,
            token_id,
            ctypes.pointer(out_str),
            ctypes.pointer(out_found),
        )
        check(lib, code, "id_to_token", details={"token_id": token_id})
    # A string may be returned alongside found=0; it is still ours to release
    token = take_string(lib, out_str)
    return token if out_found.value else None


def call_tokenizer_list_special_tokens(lib: Any, handle: int) -> list[str]:
    """Call hf_tok_list_special_tokens and return the copied token strings."""
    arr = c_char_p_p()
    length = ctypes.c_size_t(0)
    with error_channel(lib):
        code = lib.hf_tok_list_special_tokens(
            handle,
            ctypes.pointer(arr),
            ctypes.pointer(length),
        )
        check(lib, code, "list_special_tokens")
    return take_string_array(lib, arr, length.value)


def call_apply_chat_template(
    lib: Any, model_dir: bytes, messages_json: bytes, add_generation_prompt: bool
) -> str:
    """Call hf_chat_apply_template_from_dir and return the rendered prompt.

    Raises
    ------
        TemplateError: If the library has no chat template support or
            rendering fails.
    """
    fn = getattr(lib, "hf_chat_apply_template_from_dir", None)
    if fn is None:
        raise TemplateError(
            "apply_chat_template: engine library has no chat template support",
            code="TEMPLATE_UNAVAILABLE",
            details={"operation": "apply_chat_template"},
        )

    out_prompt = ctypes.c_void_p()
    with error_channel(lib):
        code = fn(
            model_dir,
            messages_json,
            1 if add_generation_prompt else 0,
            ctypes.pointer(out_prompt),
        )
        check(
            lib,
            code,
            "apply_chat_template",
            error_class=TemplateError,
            details={"model_dir": model_dir.decode("utf-8", errors="replace")},
        )
    return take_string(lib, out_prompt)
