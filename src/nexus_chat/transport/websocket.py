"""
WebSocket transport channel.

Connection: one text-frame WebSocket to the chat server. Outbound frames go
through an asyncio.Queue drained by a sender task; inbound text frames are
published on the broadcast bus by a reader task, one at a time.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from nexus_chat.bus import BroadcastBus
from nexus_chat.errors import TransportSendError

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "ws://127.0.0.1:8080"


class WebSocketChannel:
    def __init__(
        self,
        url: str,
        bus: BroadcastBus,
        open_timeout: float = 10.0,
        flush_timeout: float = 5.0,
        on_close: Optional[Callable[[Optional[str]], None]] = None,
    ):
        self._url = url
        self._bus = bus
        self._open_timeout = open_timeout
        self._flush_timeout = flush_timeout
        self.on_close = on_close
        self._ws: Optional[Any] = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._reader: Optional[asyncio.Task[None]] = None
        self._sender: Optional[asyncio.Task[None]] = None
        self._closed = False
        self._closing = False
        self._send_failed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    async def connect(self) -> None:
        """Open the socket and start the reader/sender tasks."""
        if self._closed:
            raise TransportSendError("Transport channel is closed")
        if self._ws is not None:
            return

        logger.info("Connecting to chat server at %s", self._url)
        self._ws = await websockets.connect(self._url, open_timeout=self._open_timeout)
        logger.info("Connected to chat server")
        self._reader = asyncio.create_task(self._read_loop())
        self._sender = asyncio.create_task(self._send_loop())

    def send(self, text: str) -> None:
        """Queue a frame for delivery. Fire-and-forget; raises only on local failure."""
        if self._closed:
            raise TransportSendError("Transport channel is closed")
        self._outbox.put_nowait(text)

    async def _send_loop(self) -> None:
        while True:
            text = await self._outbox.get()
            try:
                await self._ws.send(text)  # type: ignore[union-attr]
            except (ConnectionClosed, OSError) as e:
                logger.error("Send failed: %s", e)
                self._send_failed = True
                self._lost(f"send failed: {e}")
                return
            finally:
                self._outbox.task_done()

    async def _read_loop(self) -> None:
        reason = None
        try:
            async for frame in self._ws:  # type: ignore[union-attr]
                if isinstance(frame, bytes):
                    logger.debug("Skipping binary frame (%d bytes)", len(frame))
                    continue
                self._bus.publish(frame)
        except ConnectionClosed as e:
            logger.warning("Connection to chat server lost: %s", e)
            reason = str(e)
        else:
            logger.info("Chat server closed the connection")
            reason = "closed by server"
        finally:
            self._lost(reason)

    def _lost(self, reason: Optional[str]) -> None:
        """Mark the channel closed and report it once, unless disconnect() is closing it."""
        already_closed = self._closed
        self._closed = True
        if already_closed or self._closing or reason is None:
            return
        if self.on_close is not None:
            try:
                self.on_close(reason)
            except Exception:
                logger.exception("on_close callback failed")

    async def _flush(self) -> bool:
        """Wait until queued frames are written, the sender dies, or flush_timeout passes.

        Returns whether every accepted frame reached the socket.
        """
        if self._sender is None or self._sender.done():
            return self._outbox.empty() and not self._send_failed
        joined = asyncio.ensure_future(self._outbox.join())
        done, _ = await asyncio.wait(
            {joined, self._sender}, timeout=self._flush_timeout, return_when=asyncio.FIRST_COMPLETED,
        )
        if joined not in done:
            joined.cancel()
            logger.warning("Dropping %d unsent frame(s)", self._outbox.qsize())
            return False
        return not self._send_failed

    async def disconnect(self) -> bool:
        """Flush accepted frames, then close the socket. Idempotent.

        Returns False when some accepted frame was never written.
        """
        self._closing = True
        self._closed = True
        flushed = await self._flush()
        tasks = [t for t in (self._reader, self._sender) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._reader = None
        self._sender = None
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()
        return flushed
