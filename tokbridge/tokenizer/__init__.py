"""
Tokenizer module - Text encoding and decoding.

Provides:
- Tokenizer: Owner of one engine tokenizer handle (encode, decode, lookups)
- ChatTemplate: Model-native chat template formatting
- apply_chat_template: One-shot chat template rendering
"""

from .template import ChatTemplate as ChatTemplate
from .template import apply_chat_template as apply_chat_template
from .tokenizer import Tokenizer

__all__ = [
    # Core
    "Tokenizer",
    # Chat Templates
    "ChatTemplate",
    "apply_chat_template",
]
