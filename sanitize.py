from typing import Any, Optional, Union

from protocol import ChatMessage, Rejected, TypingIndicator, utc_timestamp


MAX_MESSAGE_LENGTH = 1000
DEFAULT_USERNAME = "Anonymous"
DEFAULT_TYPIST = "Someone"

INVALID_FORMAT = "Invalid message format"
EMPTY_MESSAGE = "Message cannot be empty"


def normalize_text(text: str) -> str:
    escaped = text.replace("<", "&lt;").replace(">", "&gt;")
    return escaped.strip()[:MAX_MESSAGE_LENGTH]


def _display_name(value: Any, default: str) -> str:
    if isinstance(value, str) and value:
        return value
    return default


def build_chat_message(data: Any, sender_id: str, timestamp: Optional[str] = None) -> Union[ChatMessage, Rejected]:
    """Validate a raw send-message payload and build the message to broadcast.

    Returns a Rejected outcome carrying the reason shown to the sender when
    the payload is not an object or has no usable text.
    """
    if not isinstance(data, dict):
        return Rejected(INVALID_FORMAT)
    text = data.get("message")
    if not isinstance(text, str) or not text.strip():
        return Rejected(EMPTY_MESSAGE)
    return ChatMessage(
        message=normalize_text(text),
        username=_display_name(data.get("username"), DEFAULT_USERNAME),
        timestamp=timestamp or utc_timestamp(),
        sender_id=sender_id,
    )


def build_typing_indicator(data: Any) -> TypingIndicator:
    if not isinstance(data, dict):
        data = {}
    return TypingIndicator(
        username=_display_name(data.get("username"), DEFAULT_TYPIST),
        is_typing=bool(data.get("isTyping")),
        timestamp=utc_timestamp(),
    )
