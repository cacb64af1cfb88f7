"""Bounded chat history handed to the language model."""

from collections.abc import Sequence

from app.config import get_settings
from app.db.models import ChatMessage

settings = get_settings()


def build_context_window(
    messages: Sequence[ChatMessage],
    max_messages: int | None = None,
) -> list[dict]:
    """
    Convert a chronologically sorted history into the turns sent to the model.

    Keeps the most recent max_messages (default 20, i.e. the last 10
    question/answer pairs) in their original order. Each turn carries only the
    first content block of its message; further blocks are dropped.

    This is a count-based sliding window. There is no token accounting: the
    context size is bounded by the input length limit, the output token cap
    and this message cap together.
    """
    if max_messages is None:
        max_messages = settings.chat_context_window_messages
    if max_messages <= 0:
        return []

    window = list(messages)[-max_messages:]
    return [
        {
            "role": message.role,
            "content": [
                {
                    "type": message.content[0]["type"],
                    "text": message.content[0]["text"],
                }
            ],
        }
        for message in window
    ]
