"""
nexus-chat — real-time chat client for Python.

WebSocket client that keeps a live roster and transcript for one chat session.
"""

from nexus_chat.client import AsyncNexusChat
from nexus_chat.bus import BroadcastBus, Subscription
from nexus_chat.session import SessionEngine, SessionPhase
from nexus_chat.errors import (
    NexusChatError,
    ProtocolDecodeError,
    PayloadDecodeError,
    ServerReportedError,
    TransportSendError,
    ConfigurationError,
    ConnectionError,
)
from nexus_chat.models.chat import ChatMessage, ChatState, Participant, avatar_url_for
from nexus_chat.models.envelope import Envelope, MessageKind

__version__ = "0.1.0"
__all__ = [
    "AsyncNexusChat",
    "BroadcastBus",
    "Subscription",
    "SessionEngine",
    "SessionPhase",
    "NexusChatError",
    "ProtocolDecodeError",
    "PayloadDecodeError",
    "ServerReportedError",
    "TransportSendError",
    "ConfigurationError",
    "ConnectionError",
    "ChatMessage",
    "ChatState",
    "Participant",
    "avatar_url_for",
    "Envelope",
    "MessageKind",
]
