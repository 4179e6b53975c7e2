"""
Session engine — folds inbound frames into ChatState and sends user intents.

Phases:
- DISCONNECTED: initial, after an `error` frame, or after a transport failure
- CONNECTING:   register frame sent, waiting for the first roster
- JOINED:       at least one `users` frame received

Only a `users` frame sets connected=True and only an `error` frame sets it
back to False. Every decode/send failure is recorded in last_error and the
session carries on.
"""

import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from nexus_chat.bus import BroadcastBus, Subscription
from nexus_chat.errors import (
    ConfigurationError,
    ConnectionError,
    NexusChatError,
    PayloadDecodeError,
    ProtocolDecodeError,
    ServerReportedError,
    TransportSendError,
)
from nexus_chat.models.chat import ChatState, Participant
from nexus_chat.models.envelope import Envelope, MessageKind
from nexus_chat.transport.envelope import (
    decode_chat_message,
    decode_envelope,
    encode_envelope,
    message_envelope,
    register_envelope,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[ChatState], None]


class FrameSender(Protocol):
    def send(self, text: str) -> None: ...


class SessionPhase(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    JOINED = "joined"


def _require_identity(identity: Optional[str]) -> str:
    if not identity or not identity.strip():
        raise ConfigurationError("A non-empty username is required to join the chat")
    return identity


class SessionEngine:
    def __init__(
        self,
        identity: str,
        bus: BroadcastBus,
        transport: FrameSender,
        strict_register: bool = False,
    ):
        self._identity = _require_identity(identity)
        self._transport = transport
        self._strict_register = strict_register
        self._state = ChatState.empty()
        self._phase = SessionPhase.DISCONNECTED
        self._draft = ""
        self._last_failure: Optional[NexusChatError] = None
        self._listeners: list[StateListener] = []
        self._subscription: Optional[Subscription] = bus.subscribe(self.handle_frame)
        self._register()

    # --- read side ---

    @property
    def state(self) -> ChatState:
        return self._state

    def get_state(self) -> ChatState:
        return self._state

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def last_failure(self) -> Optional[NexusChatError]:
        """The most recent recovered error, kept alongside its last_error text."""
        return self._last_failure

    def on_change(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener. Returns a cleanup function."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    # --- outbound intents ---

    def update_draft(self, text: str) -> None:
        self._draft = text
        self._notify()

    def key_press(self, key: str) -> bool:
        if key == "Enter":
            self.submit()
            return True
        return False

    def submit(self) -> None:
        """Send the draft as a chat message. Whitespace-only drafts are ignored."""
        if not self._draft.strip():
            return
        try:
            self._transport.send(encode_envelope(message_envelope(self._draft)))
        except (TransportSendError, TypeError, ValueError) as e:
            logger.error("Failed to send message: %s", e)
            self._phase = SessionPhase.DISCONNECTED
            self._record(self._as_send_error(e, "Failed to send message"))
            self._notify()
            return
        self._draft = ""
        self._notify()

    def reauthenticate(self, identity: str) -> None:
        """Switch identity and register again with the server."""
        self._identity = _require_identity(identity)
        self._register()
        self._notify()

    def _register(self) -> None:
        try:
            self._transport.send(encode_envelope(register_envelope(self._identity)))
        except (TransportSendError, TypeError, ValueError) as e:
            logger.error("Failed to send registration: %s", e)
            self._phase = SessionPhase.DISCONNECTED
            self._state = self._state.model_copy(update={"connected": False})
            self._record(self._as_send_error(e, "Failed to register"))
            return
        self._phase = SessionPhase.CONNECTING
        logger.debug("Registration sent for %r", self._identity)

    # --- inbound frames ---

    def handle_frame(self, text: str) -> None:
        """Bus subscriber. Never raises for protocol or payload problems."""
        try:
            envelope = decode_envelope(text)
        except ProtocolDecodeError as e:
            logger.error("Failed to parse websocket message: %s", e)
            self._record(e)
            self._notify()
            return

        if self._apply(envelope):
            self._notify()

    def _apply(self, envelope: Envelope) -> bool:
        """Fold one envelope into state. Returns whether anything changed."""
        kind = envelope.kind
        if kind is MessageKind.USERS:
            roster = tuple(Participant.named(name) for name in envelope.items or [])
            self._state = self._state.model_copy(
                update={"roster": roster, "connected": True, "last_error": None}
            )
            self._last_failure = None
            if self._phase is not SessionPhase.JOINED:
                logger.info("Joined chat as %r (%d online)", self._identity, len(roster))
            self._phase = SessionPhase.JOINED
            return True

        if kind is MessageKind.MESSAGE:
            if envelope.payload is None:
                logger.warning("Message frame without data ignored")
                return False
            try:
                message = decode_chat_message(envelope.payload)
            except PayloadDecodeError as e:
                logger.error("Failed to parse message data: %s", e)
                self._record(e)
                return True
            self._state = self._state.model_copy(
                update={"transcript": self._state.transcript + (message,)}
            )
            return True

        if kind is MessageKind.ERROR:
            logger.warning("Server reported error: %s", envelope.payload)
            self._last_failure = ServerReportedError(envelope.payload)
            self._state = self._state.model_copy(
                update={"last_error": envelope.payload, "connected": False}
            )
            self._phase = SessionPhase.DISCONNECTED
            return True

        # register: the server never legitimately sends one
        if self._strict_register:
            self._record(ProtocolDecodeError(
                "Unexpected register frame from server",
                reason=ProtocolDecodeError.UNKNOWN_KIND,
                details={"messageType": kind.value},
            ))
            return True
        logger.debug("Ignoring register frame from server")
        return False

    def transport_lost(self, reason: Optional[str] = None) -> None:
        """The socket went away. Phase drops to DISCONNECTED; `connected` is left as is."""
        if self._subscription is None:
            return
        logger.warning("Transport lost: %s", reason or "connection closed")
        self._phase = SessionPhase.DISCONNECTED
        self._record(ConnectionError(f"Connection to chat server lost: {reason or 'closed'}"))
        self._notify()

    # --- helpers ---

    @staticmethod
    def _as_send_error(error: Exception, prefix: str) -> NexusChatError:
        if isinstance(error, TransportSendError):
            return TransportSendError(f"{prefix}: {error}")
        return TransportSendError(f"{prefix}: could not encode frame ({error})")

    def _record(self, error: NexusChatError) -> None:
        self._last_failure = error
        self._state = self._state.model_copy(update={"last_error": str(error)})

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("State listener failed")

    def close(self) -> None:
        """Detach from the bus and drop all listeners."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self._listeners.clear()
