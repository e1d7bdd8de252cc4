"""
Shared test fixtures for tokbridge.

This package provides the in-process engine double and the tokenizer
definitions the tests load through it.
"""

from .engine import IDS, STRING, STRING_ARRAY, FakeEngine, FakeEngineFault
from .native import ForeignEngine
from .tokenizers import (
    BOS_ID,
    EOS_ID,
    IM_END_ID,
    IM_START_ID,
    MINIMAL_TOKENIZER_JSON,
    PAD_ID,
    UNK_ID,
    write_tokenizer_json,
)

__all__ = [
    # Engine double
    "FakeEngine",
    "FakeEngineFault",
    "ForeignEngine",
    "IDS",
    "STRING",
    "STRING_ARRAY",
    # Tokenizer definitions
    "MINIMAL_TOKENIZER_JSON",
    "BOS_ID",
    "EOS_ID",
    "PAD_ID",
    "UNK_ID",
    "IM_START_ID",
    "IM_END_ID",
    "write_tokenizer_json",
]
