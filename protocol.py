import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union


# Client to server
SEND_MESSAGE = "send-message"
TYPING = "typing"

# Server to client
CONNECTION_STATUS = "connection-status"
USER_JOINED = "user-joined"
RECEIVE_MESSAGE = "receive-message"
MESSAGE_SENT = "message-sent"
ERROR = "error"
USER_TYPING = "user-typing"
USER_LEFT = "user-left"
SERVER_SHUTDOWN = "server-shutdown"

WELCOME_TEXT = "Welcome! You're successfully connected to the server."
JOINED_TEXT = "A new user joined the chat"
LEFT_TEXT = "A user left the chat"
SHUTDOWN_TEXT = "Server is shutting down. Please reconnect in a moment."


class FrameError(ValueError):
    """Raised when an inbound frame is not a well-formed event."""


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def encode_event(event: str, data: Dict[str, Any]) -> str:
    return json.dumps({"event": event, "data": data}, separators=(",", ":"))


def decode_event(frame: Union[str, bytes]) -> Tuple[str, Any]:
    try:
        message = json.loads(frame)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FrameError(f"malformed JSON: {exc}") from exc
    if not isinstance(message, dict):
        raise FrameError("frame is not an object")
    event = message.get("event")
    if not isinstance(event, str) or not event:
        raise FrameError("frame has no event name")
    return event, message.get("data")


@dataclass(frozen=True)
class ChatMessage:
    message: str
    username: str
    timestamp: str
    sender_id: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "username": self.username,
            "timestamp": self.timestamp,
            "senderId": self.sender_id,
        }


@dataclass(frozen=True)
class TypingIndicator:
    username: str
    is_typing: bool
    timestamp: str

    def to_payload(self) -> Dict[str, Any]:
        return {"username": self.username, "isTyping": self.is_typing, "timestamp": self.timestamp}


# Outcomes of handling one inbound event.

@dataclass(frozen=True)
class Ok:
    pass


@dataclass(frozen=True)
class Rejected:
    reason: str


@dataclass(frozen=True)
class Failed:
    reason: str = "Failed to process message"


@dataclass(frozen=True)
class Ignored:
    pass


Outcome = Union[Ok, Rejected, Failed, Ignored]


def connection_status(active_users: int) -> Dict[str, Any]:
    return {
        "status": "connected",
        "message": WELCOME_TEXT,
        "timestamp": utc_timestamp(),
        "activeUsers": active_users,
    }


def presence_notice(text: str, active_users: int) -> Dict[str, Any]:
    return {"message": text, "activeUsers": active_users, "timestamp": utc_timestamp()}


def delivery_receipt(timestamp: str) -> Dict[str, Any]:
    return {"status": "delivered", "timestamp": timestamp}


def error_notice(reason: str) -> Dict[str, Any]:
    return {"message": reason}


def shutdown_notice() -> Dict[str, Any]:
    return {"message": SHUTDOWN_TEXT, "timestamp": utc_timestamp()}
