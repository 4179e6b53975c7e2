"""
Envelope construction and parsing.

The outer frame and the nested ChatMessage inside a `message` frame are
decoded separately; each can fail on its own.
"""

import json
from typing import Any

from pydantic import ValidationError

from nexus_chat.errors import PayloadDecodeError, ProtocolDecodeError
from nexus_chat.models.chat import ChatMessage
from nexus_chat.models.envelope import Envelope, MessageKind

KNOWN_KINDS = {kind.value for kind in MessageKind}


def register_envelope(identity: str) -> Envelope:
    return Envelope(kind=MessageKind.REGISTER, payload=identity)


def message_envelope(text: str) -> Envelope:
    """Outbound chat text travels raw in `data`; the server builds {from, message}."""
    return Envelope(kind=MessageKind.MESSAGE, payload=text)


def encode_envelope(envelope: Envelope) -> str:
    """Serialize an envelope to its wire text."""
    return json.dumps(envelope.model_dump(mode="json", by_alias=True))


def decode_envelope(text: str) -> Envelope:
    """Parse an inbound frame. Raises ProtocolDecodeError."""
    try:
        raw: Any = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        raise ProtocolDecodeError(f"Failed to parse server message: {e}")
    if not isinstance(raw, dict):
        raise ProtocolDecodeError(
            f"Failed to parse server message: expected a JSON object, got {type(raw).__name__}"
        )

    kind = raw.get("messageType")
    if not isinstance(kind, str) or kind not in KNOWN_KINDS:
        raise ProtocolDecodeError(
            f"Unknown message type: {kind!r}",
            reason=ProtocolDecodeError.UNKNOWN_KIND,
            details={"messageType": kind},
        )

    try:
        return Envelope.model_validate(raw)
    except ValidationError as e:
        raise ProtocolDecodeError(
            f"Failed to parse server message: {e.error_count()} invalid field(s)",
            details={"errors": e.errors(include_url=False)},
        )


def decode_chat_message(text: str) -> ChatMessage:
    """Parse the nested ChatMessage carried by a `message` frame. Raises PayloadDecodeError."""
    try:
        raw: Any = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        raise PayloadDecodeError(f"Failed to parse message data: {e}")
    try:
        return ChatMessage.model_validate(raw)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors() if err["loc"]]
        raise PayloadDecodeError(
            f"Failed to parse message data: invalid field(s) {', '.join(missing) or '<root>'}",
            details={"errors": e.errors(include_url=False)},
        )
