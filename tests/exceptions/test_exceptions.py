"""
Tests for the exception hierarchy and status-code mapping.

Tests that:
1. All exception types are importable and properly categorized
2. Engine status codes map to the right exception and string code
3. Engine messages are read from the error channel and attached
"""

from unittest.mock import MagicMock

import pytest

import tokbridge
from tokbridge._bindings import (
    ERROR_MAP,
    STATUS_ALLOCATION_FAILED,
    STATUS_NULL_ARGUMENT,
    STATUS_OK,
    STATUS_OPERATION_FAILED,
    check,
    format_error,
)
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


def _lib_with_error(message):
    """Library double whose last-error slot holds ``message``."""
    lib = MagicMock()
    lib.hf_last_error_message.return_value = None if message is None else message.encode()
    return lib


class TestErrorTypes:
    """Tests for error type hierarchy and accessibility."""

    def test_base_error_importable(self):
        """TokbridgeError is importable from tokbridge."""
        assert hasattr(tokbridge, "TokbridgeError")
        assert issubclass(tokbridge.TokbridgeError, Exception)

    @pytest.mark.parametrize(
        "cls",
        [LibraryNotFoundError, LoadError, EngineError, StateError, ValidationError],
    )
    def test_all_derive_from_base(self, cls):
        assert issubclass(cls, TokbridgeError)

    def test_error_inheritance_chain(self):
        """Error classes can be caught by their builtin counterparts."""
        assert issubclass(LibraryNotFoundError, OSError)
        assert issubclass(LoadError, RuntimeError)
        assert issubclass(EngineError, RuntimeError)
        assert issubclass(EngineAllocationError, EngineError)
        assert issubclass(EngineAllocationError, MemoryError)
        assert issubclass(TemplateError, EngineError)
        assert issubclass(StateError, RuntimeError)
        assert issubclass(ValidationError, ValueError)

    def test_default_codes(self):
        assert LibraryNotFoundError("x").code == "LIBRARY_NOT_FOUND"
        assert LoadError("x").code == "LOAD_FAILED"
        assert EngineError("x").code == "ENGINE_ERROR"
        assert EngineAllocationError("x").code == "ENGINE_ALLOCATION_FAILED"
        assert TemplateError("x").code == "TEMPLATE_RENDER_FAILED"
        assert StateError("x").code == "STATE_ERROR"
        assert ValidationError("x").code == "INVALID_ARGUMENT"

    def test_attributes(self):
        error = EngineError(
            "encode: boom",
            code="ENGINE_OPERATION_FAILED",
            details={"operation": "encode", "engine_message": "boom"},
            original_code=-3,
        )
        assert error.message == "encode: boom"
        assert str(error) == "encode: boom"
        assert error.operation == "encode"
        assert error.engine_message == "boom"
        assert error.original_code == -3
        assert repr(error) == "EngineError('encode: boom', code='ENGINE_OPERATION_FAILED')"

    def test_details_default_to_empty_dict(self):
        error = TokbridgeError("x")
        assert error.details == {}
        assert error.original_code is None


class TestCheck:
    """Tests for check() status mapping."""

    def test_ok_status_does_not_raise(self):
        lib = _lib_with_error("stale")
        check(lib, STATUS_OK, "encode")
        lib.hf_last_error_message.assert_not_called()

    @pytest.mark.parametrize(
        ("status", "cls", "code"),
        [
            (STATUS_NULL_ARGUMENT, EngineError, "ENGINE_NULL_ARGUMENT"),
            (STATUS_ALLOCATION_FAILED, EngineAllocationError, "ENGINE_ALLOCATION_FAILED"),
            (STATUS_OPERATION_FAILED, EngineError, "ENGINE_OPERATION_FAILED"),
        ],
    )
    def test_known_statuses(self, status, cls, code):
        lib = _lib_with_error("engine said no")
        with pytest.raises(cls) as exc_info:
            check(lib, status, "decode")

        error = exc_info.value
        assert type(error) is cls
        assert error.code == code
        assert error.original_code == status
        assert str(error) == "decode: engine said no"
        assert error.details["status"] == status

    def test_unmapped_status(self):
        lib = _lib_with_error("weird")
        with pytest.raises(EngineError) as exc_info:
            check(lib, -42, "encode")
        assert exc_info.value.code == "UNMAPPED_ERROR"
        assert exc_info.value.details["status"] == -42

    def test_missing_message_uses_placeholder(self):
        lib = _lib_with_error(None)
        with pytest.raises(EngineError) as exc_info:
            check(lib, STATUS_OPERATION_FAILED, "token_to_id")
        assert str(exc_info.value) == "token_to_id: unknown error"
        assert exc_info.value.engine_message is None

    def test_error_class_override(self):
        lib = _lib_with_error("render error")
        with pytest.raises(TemplateError) as exc_info:
            check(lib, STATUS_OPERATION_FAILED, "apply_chat_template", error_class=TemplateError)
        assert exc_info.value.code == "ENGINE_OPERATION_FAILED"

    def test_error_class_override_keeps_allocation_error(self):
        """Allocation failures stay MemoryErrors whatever the override."""
        lib = _lib_with_error("CString failed")
        with pytest.raises(EngineAllocationError):
            check(lib, STATUS_ALLOCATION_FAILED, "apply_chat_template", error_class=TemplateError)

    def test_extra_details_merged(self):
        lib = _lib_with_error("x")
        with pytest.raises(EngineError) as exc_info:
            check(lib, STATUS_OPERATION_FAILED, "decode", details={"num_ids": 3})
        assert exc_info.value.details["num_ids"] == 3
        assert exc_info.value.details["operation"] == "decode"

    def test_invalid_utf8_message_is_replaced(self):
        lib = MagicMock()
        lib.hf_last_error_message.return_value = b"bad \xff byte"
        with pytest.raises(EngineError) as exc_info:
            check(lib, STATUS_OPERATION_FAILED, "encode")
        assert exc_info.value.engine_message == "bad � byte"

    def test_error_map_covers_documented_statuses(self):
        assert set(ERROR_MAP) == {-1, -2, -3}


class TestFormatError:
    def test_with_message(self):
        assert format_error("encode", "boom") == "encode: boom"

    @pytest.mark.parametrize("message", [None, ""])
    def test_without_message(self, message):
        assert format_error("encode", message) == "encode: unknown error"
