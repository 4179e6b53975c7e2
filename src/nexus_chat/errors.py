"""
Nexus chat error types.

Everything except ConfigurationError is recovered inside the session engine
and surfaced through ChatState.last_error.
"""

from typing import Any, Optional


class NexusChatError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ProtocolDecodeError(NexusChatError):
    """An inbound frame could not be decoded into an Envelope."""

    MALFORMED = "malformed"
    UNKNOWN_KIND = "unknown_kind"

    def __init__(self, message: str, reason: str = MALFORMED, details: Optional[dict[str, Any]] = None):
        super().__init__("protocol_decode_error", message, details)
        self.reason = reason


class PayloadDecodeError(NexusChatError):
    """The nested ChatMessage inside a message frame is invalid."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("payload_decode_error", message, details)
        self.reason = ProtocolDecodeError.MALFORMED


class ServerReportedError(NexusChatError):
    def __init__(self, message: Optional[str]):
        super().__init__("server_error", message or "server reported an error")
        self.reason = message


class TransportSendError(NexusChatError):
    def __init__(self, message: str):
        super().__init__("transport_send_error", message)


class ConfigurationError(NexusChatError):
    def __init__(self, message: str):
        super().__init__("configuration_error", message)


class ConnectionError(NexusChatError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
