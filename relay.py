import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

import protocol
from presence import PresenceRegistry
from protocol import ChatMessage, Failed, Ignored, Ok, Outcome, Rejected
from ratelimit import FixedWindowRateLimiter
from sanitize import build_chat_message, build_typing_indicator


logger = logging.getLogger(__name__)

RATE_LIMITED = "Rate limit exceeded. Please slow down."


class Channel(Protocol):
    # deliver() must not block; frames to a closing transport may be dropped.
    def deliver(self, frame: str) -> None:
        ...


class SessionState(enum.Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    DISCONNECTED = "disconnected"


@dataclass
class Session:
    identity: str
    channel: Channel
    remote_address: Any = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: SessionState = SessionState.CONNECTING


class Relay:
    def __init__(
        self,
        registry: Optional[PresenceRegistry] = None,
        limiter: Optional[FixedWindowRateLimiter] = None,
    ) -> None:
        self.registry = registry if registry is not None else PresenceRegistry()
        self.limiter = limiter if limiter is not None else FixedWindowRateLimiter()
        self.sessions: Dict[str, Session] = {}
        self._handlers: Dict[str, Callable[[Session, Any], Outcome]] = {
            protocol.SEND_MESSAGE: self.handle_send_message,
            protocol.TYPING: self.handle_typing,
        }

    @property
    def active_users(self) -> int:
        return self.registry.size()

    def is_active(self, identity: str) -> bool:
        session = self.sessions.get(identity)
        return session is not None and session.state is SessionState.ACTIVE

    # -- delivery ---------------------------------------------------------

    def _deliver(self, session: Session, frame: str) -> None:
        try:
            session.channel.deliver(frame)
        except Exception:
            logger.warning("Delivery to %s failed", session.identity, exc_info=True)

    def send_to(self, identity: str, event: str, payload: Dict[str, Any]) -> None:
        session = self.sessions.get(identity)
        if session is None:
            return
        self._deliver(session, protocol.encode_event(event, payload))

    def broadcast_except(self, origin: Optional[str], event: str, payload: Dict[str, Any]) -> int:
        """Deliver an event to every live session other than origin.

        Returns the number of recipients the event was handed to.
        """
        frame = protocol.encode_event(event, payload)
        recipients: List[Session] = [
            session
            for identity, session in self.sessions.items()
            if identity != origin and session.state is SessionState.ACTIVE
        ]
        for session in recipients:
            self._deliver(session, frame)
        return len(recipients)

    def broadcast(self, event: str, payload: Dict[str, Any]) -> int:
        return self.broadcast_except(None, event, payload)

    # -- lifecycle --------------------------------------------------------

    def connect(self, identity: str, channel: Channel, remote_address: Any = None) -> Session:
        if identity in self.sessions:
            raise ValueError(f"identity {identity!r} is already connected")
        session = Session(identity=identity, channel=channel, remote_address=remote_address)
        self.sessions[identity] = session
        self.registry.join(identity)
        logger.info(
            "New connection established: id=%s address=%s active=%d",
            identity,
            remote_address,
            self.active_users,
        )
        self.send_to(identity, protocol.CONNECTION_STATUS, protocol.connection_status(self.active_users))
        self.broadcast_except(
            identity,
            protocol.USER_JOINED,
            protocol.presence_notice(protocol.JOINED_TEXT, self.active_users),
        )
        session.state = SessionState.ACTIVE
        return session

    def disconnect(self, identity: str, reason: str = "") -> bool:
        """Tear down a session. Returns False when there was nothing to do."""
        session = self.sessions.pop(identity, None)
        if session is None:
            return False
        session.state = SessionState.DISCONNECTED
        self.registry.leave(identity)
        self.limiter.forget(identity)
        logger.info(
            "User disconnected: id=%s reason=%s remaining=%d",
            identity,
            reason or "unknown",
            self.active_users,
        )
        self.broadcast_except(
            identity,
            protocol.USER_LEFT,
            protocol.presence_notice(protocol.LEFT_TEXT, self.active_users),
        )
        return True

    def transport_error(self, identity: str, error: Any) -> None:
        logger.warning("Socket error for %s: %s", identity, error)

    # -- inbound events ---------------------------------------------------

    def dispatch(self, identity: str, event: str, data: Any) -> Outcome:
        session = self.sessions.get(identity)
        if session is None or session.state is not SessionState.ACTIVE:
            logger.debug("Dropping %r from inactive connection %s", event, identity)
            return Ignored()
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("Ignoring unknown event %r from %s", event, identity)
            return Ignored()
        try:
            outcome = handler(session, data)
        except Exception:
            logger.exception("Error handling %r from %s", event, identity)
            outcome = Failed()
        if isinstance(outcome, (Rejected, Failed)):
            self.send_to(identity, protocol.ERROR, protocol.error_notice(outcome.reason))
        return outcome

    def handle_send_message(self, session: Session, data: Any) -> Outcome:
        if not self.limiter.allow(session.identity):
            logger.warning("Rate limit exceeded for %s", session.identity)
            return Rejected(RATE_LIMITED)
        message = build_chat_message(data, session.identity)
        if isinstance(message, Rejected):
            logger.warning("Rejected message from %s: %s", session.identity, message.reason)
            return message
        self._relay_chat(message)
        self.send_to(session.identity, protocol.MESSAGE_SENT, protocol.delivery_receipt(message.timestamp))
        return Ok()

    def _relay_chat(self, message: ChatMessage) -> None:
        logger.info("Message from %s (%s): %s", message.username, message.sender_id, message.message)
        self.broadcast_except(message.sender_id, protocol.RECEIVE_MESSAGE, message.to_payload())

    def handle_typing(self, session: Session, data: Any) -> Outcome:
        indicator = build_typing_indicator(data)
        self.broadcast_except(session.identity, protocol.USER_TYPING, indicator.to_payload())
        return Ok()

    # -- shutdown ---------------------------------------------------------

    def announce_shutdown(self) -> int:
        return self.broadcast(protocol.SERVER_SHUTDOWN, protocol.shutdown_notice())
