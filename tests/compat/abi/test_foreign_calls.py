"""
Calls through real C function pointers.

The rest of the suite hands tokbridge a FakeEngine whose symbols are Python
methods, so argtypes are never exercised. Here the same double sits behind
C callbacks typed after the engine header, and tokbridge's declared
signatures do the marshalling. Every operation, its release call, and the
error path must survive the round trip through C values.
"""

import ctypes
import gc

import pytest

from tests.fixtures import BOS_ID, EOS_ID, STRING, ForeignEngine
from tests.fixtures.native import FIRST_NATIVE_HANDLE
from tokbridge import Tokenizer, apply_chat_template
from tokbridge._native import SIGNATURES, setup_signatures
from tokbridge.exceptions import EngineError, LoadError


@pytest.fixture
def foreign():
    """ForeignEngine with tokbridge's signatures declared on it."""
    lib = ForeignEngine()
    assert setup_signatures(lib) == []
    yield lib
    gc.collect()
    assert not lib.engine.faults, f"engine faults: {lib.engine.faults}"


@pytest.fixture
def foreign_tokenizer(foreign, tokenizer_path):
    tok = Tokenizer(tokenizer_path, lib=foreign)
    yield tok
    tok.close()


class TestHandles:
    """Handles keep all 64 bits across the boundary."""

    def test_handle_above_32_bits(self, foreign_tokenizer):
        assert foreign_tokenizer._ptr == FIRST_NATIVE_HANDLE

    def test_load_move_close_frees_once(self, foreign, tokenizer_path):
        tok = Tokenizer(tokenizer_path, lib=foreign)
        moved = tok.move()
        assert moved.encode("a", add_special=False) == [69]
        moved.close()
        tok.close()

        assert foreign.engine.loads == foreign.engine.frees == 1
        assert foreign.engine.live_handles == 0

    def test_failed_load_reads_message(self, foreign, tmp_path):
        with pytest.raises(LoadError) as exc_info:
            Tokenizer(tmp_path / "missing.json", lib=foreign)
        assert "Tokenizer::from_file failed" in str(exc_info.value)

    def test_narrowed_handle_argtype_is_caught(self, foreign, foreign_tokenizer):
        """Declaring the handle as C int cannot pass unnoticed."""
        argtypes = SIGNATURES["hf_tok_encode"][0]
        foreign.hf_tok_encode.argtypes = [ctypes.c_int, *argtypes[1:]]

        with pytest.raises((ctypes.ArgumentError, EngineError)) as exc_info:
            foreign_tokenizer.encode("a")

        if isinstance(exc_info.value, EngineError):
            assert any("unknown or freed handle" in fault for fault in foreign.engine.faults)
        foreign.engine.faults.clear()


class TestOperations:
    """Each operation through C pointers matches the in-process result."""

    def test_encode_decode(self, foreign, foreign_tokenizer):
        ids = foreign_tokenizer.encode("Hi")
        assert ids == [BOS_ID, 44, 77, EOS_ID]
        assert foreign_tokenizer.decode(ids) == "Hi"
        assert foreign_tokenizer.decode([]) == ""
        foreign.engine.assert_balanced()

    def test_decode_one_uint32_argument(self, foreign, foreign_tokenizer):
        assert foreign_tokenizer.decode_one(69) == "a"
        assert foreign_tokenizer.decode_one(EOS_ID, skip_special=False) == "</s>"
        foreign.engine.assert_balanced()

    def test_lookups(self, foreign, foreign_tokenizer):
        assert foreign_tokenizer.token_to_id("a") == 69
        assert foreign_tokenizer.token_to_id("missing-token") is None
        assert foreign_tokenizer.id_to_token(69) == "a"
        assert foreign_tokenizer.id_to_token(999_999) is None
        foreign.engine.assert_balanced()

    def test_special_tokens_string_array(self, foreign, foreign_tokenizer):
        tokens = foreign_tokenizer.special_tokens()
        assert tokens == sorted(tokens)
        assert "</s>" in tokens
        assert foreign_tokenizer.stop_token_ids(["</s>", "missing"]) == [EOS_ID]
        foreign.engine.assert_balanced()

    def test_chat_template(self, foreign, model_dir):
        prompt = apply_chat_template(
            model_dir, [{"role": "user", "content": "Hi"}], lib=foreign
        )
        assert prompt == "<|im_start|>user\nHi<|im_end|>\n<|im_start|>assistant\n"
        assert foreign.engine.releases[STRING] == 1
        foreign.engine.assert_balanced()


class TestErrorPath:
    """Failures cross the boundary as status plus last-error message."""

    def test_engine_message_copied(self, foreign, foreign_tokenizer):
        with pytest.raises(EngineError) as exc_info:
            foreign_tokenizer.decode([4_000_000])

        assert exc_info.value.engine_message == "decode failed: invalid token id 4000000"
        assert exc_info.value.original_code == -3
        foreign.engine.assert_balanced()

    def test_allocation_failure(self, foreign, foreign_tokenizer):
        foreign.engine.inject_failure("encode", status=-2, message="malloc failed")
        with pytest.raises(MemoryError):
            foreign_tokenizer.encode("a")
        assert foreign_tokenizer.encode("a", add_special=False) == [69]
        foreign.engine.assert_balanced()
