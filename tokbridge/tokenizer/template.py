"""
Model-native chat template formatting.

Applies the chat template shipped in a model directory
(``tokenizer_config.json``), rendered by the engine, so prompts are formatted
exactly as the model expects.
"""

import json
import os
from typing import Any

from .._bindings import get_lib, to_c_string
from .._logging import scoped_logger
from ..exceptions import ValidationError
from ._bindings import call_apply_chat_template

logger = scoped_logger("template")

# Type alias for messages
Message = dict[str, str | list | dict]


def apply_chat_template(
    model_dir: str | os.PathLike,
    messages: list[Message] | Any,  # Also accepts any iterable of messages
    add_generation_prompt: bool = True,
    *,
    lib: Any = None,
) -> str:
    """
    Apply a model's chat template to a list of messages.

    Args:
        model_dir: Path to the model directory containing tokenizer_config.json
        messages: List of message dicts with 'role' and 'content' keys.
                  Roles can be: 'system', 'user', 'assistant', 'tool'
        add_generation_prompt: Whether to add the assistant prompt marker at the end
        lib: Engine library to use. Defaults to the process-wide library.

    Returns
    -------
        Formatted prompt string

    Raises
    ------
        TemplateError: If the model has no chat template or rendering fails.
        ValidationError: If messages cannot be serialized to JSON.

    Example:
        >>> prompt = apply_chat_template(
        ...     "models/qwen",
        ...     messages=[
        ...         {"role": "system", "content": "You are helpful."},
        ...         {"role": "user", "content": "Hello!"},
        ...     ],
        ... )
    """
    model_dir = os.fspath(model_dir)
    if isinstance(messages, (str, bytes)):
        raise ValidationError(
            "messages must be a list of message dicts, got str",
            details={"param": "messages"},
        )
    messages_list = messages if isinstance(messages, list) else list(messages)

    try:
        messages_json = json.dumps(messages_list)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"messages are not JSON serializable: {exc}",
            details={"param": "messages"},
        ) from exc

    lib = lib if lib is not None else get_lib()
    logger.debug(
        "Applying chat template",
        extra={"path": model_dir, "num_messages": len(messages_list)},
    )
    return call_apply_chat_template(
        lib,
        to_c_string(model_dir, "model_dir"),
        to_c_string(messages_json, "messages"),
        add_generation_prompt,
    )


class ChatTemplate:
    """
    Chat template formatter for a specific model.

    Example:
        >>> template = ChatTemplate("models/qwen")
        >>> prompt = template.apply([
        ...     {"role": "user", "content": "Hello"},
        ...     {"role": "assistant", "content": "Hi!"},
        ...     {"role": "user", "content": "How are you?"},
        ... ])
    """

    def __init__(self, model_dir: str | os.PathLike, *, lib: Any = None):
        """
        Initialize chat template for a model.

        Args:
            model_dir: Path to model directory
            lib: Engine library to use. Defaults to the process-wide library.
        """
        self._model_dir = os.fspath(model_dir)
        self._lib = lib

    @property
    def model_dir(self) -> str:
        """The model directory templates are read from."""
        return self._model_dir

    def apply(
        self,
        messages: list[Message],
        add_generation_prompt: bool = True,
    ) -> str:
        """
        Apply the chat template with a list of messages.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            add_generation_prompt: Whether to add assistant prompt at end.

        Returns
        -------
            Formatted prompt string
        """
        return apply_chat_template(
            self._model_dir, messages, add_generation_prompt, lib=self._lib
        )

    def __repr__(self) -> str:
        return f"ChatTemplate({self._model_dir!r})"
