"""
AsyncNexusChat — application root wiring bus, transport channel and session engine.
"""

import asyncio
from typing import Callable, Optional

from websockets.exceptions import InvalidHandshake, InvalidURI

from nexus_chat.bus import BroadcastBus
from nexus_chat.errors import ConfigurationError, ConnectionError
from nexus_chat.models.chat import ChatState
from nexus_chat.session import SessionEngine, SessionPhase, StateListener
from nexus_chat.transport.websocket import DEFAULT_SERVER_URL, WebSocketChannel


class AsyncNexusChat:
    """Async chat client (primary)."""

    def __init__(
        self,
        server_url: str = DEFAULT_SERVER_URL,
        open_timeout: float = 10.0,
        strict_register: bool = False,
    ):
        self._server_url = server_url
        self._open_timeout = open_timeout
        self._strict_register = strict_register

        self._bus: Optional[BroadcastBus] = None
        self._channel: Optional[WebSocketChannel] = None
        self._engine: Optional[SessionEngine] = None

    @property
    def server_url(self) -> str:
        return self._server_url

    @property
    def engine(self) -> SessionEngine:
        self._ensure_session()
        return self._engine  # type: ignore[return-value]

    @property
    def state(self) -> ChatState:
        if self._engine is None:
            return ChatState.empty()
        return self._engine.state

    @property
    def connected(self) -> bool:
        """True once the server has confirmed the session with a roster."""
        return self._engine is not None and self._engine.state.connected

    async def connect(self, username: str) -> None:
        if not username or not username.strip():
            raise ConfigurationError("A non-empty username is required to join the chat")
        if self._engine is not None:
            await self.disconnect()

        self._bus = BroadcastBus()
        self._channel = WebSocketChannel(
            self._server_url, self._bus,
            open_timeout=self._open_timeout,
            on_close=self._on_transport_closed,
        )
        try:
            await self._channel.connect()
        except (OSError, asyncio.TimeoutError, InvalidHandshake, InvalidURI) as e:
            self._channel = None
            self._bus = None
            raise ConnectionError(f"Could not reach chat server at {self._server_url}: {e}") from e
        self._engine = SessionEngine(
            username, self._bus, self._channel, strict_register=self._strict_register,
        )

    async def disconnect(self) -> bool:
        """Flush queued frames and close. Returns False if any accepted frame was dropped."""
        flushed = True
        if self._engine:
            self._engine.close()
            self._engine = None
        if self._channel:
            flushed = await self._channel.disconnect()
            self._channel = None
        self._bus = None
        return flushed

    def update_draft(self, text: str) -> None:
        self.engine.update_draft(text)

    def submit(self) -> None:
        self.engine.submit()

    def send_text(self, text: str) -> None:
        """Convenience: replace the draft and submit it."""
        self.engine.update_draft(text)
        self.engine.submit()

    def on_change(self, listener: StateListener) -> Callable[[], None]:
        return self.engine.on_change(listener)

    async def wait_until_joined(self, timeout: float = 10.0) -> bool:
        """Wait for the first roster. False on timeout or if the server rejects the session."""
        engine = self.engine
        if engine.phase is SessionPhase.JOINED:
            return True
        settled = asyncio.Event()

        def _listener(_state: ChatState) -> None:
            if engine.phase is not SessionPhase.CONNECTING:
                settled.set()

        remove = engine.on_change(_listener)
        try:
            if engine.phase is SessionPhase.DISCONNECTED:
                return False
            await asyncio.wait_for(settled.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        finally:
            remove()
        return engine.phase is SessionPhase.JOINED

    def _on_transport_closed(self, reason: Optional[str]) -> None:
        if self._engine is not None:
            self._engine.transport_lost(reason)

    def _ensure_session(self) -> None:
        if self._engine is None:
            raise ConnectionError("Not connected. Call connect() first.")
