import asyncio
import json
from types import SimpleNamespace
from typing import Optional

import pytest

from nexus_chat.bus import BroadcastBus
from nexus_chat.errors import TransportSendError
from nexus_chat.transport import websocket as ws_module


class FakeTransport:
    """In-memory frame sender standing in for the WebSocket channel."""

    def __init__(self, fail: bool = False):
        self.sent: list[str] = []
        self.fail = fail

    def send(self, text: str) -> None:
        if self.fail:
            raise TransportSendError("Transport channel is closed")
        self.sent.append(text)

    @property
    def frames(self) -> list[dict]:
        return [json.loads(t) for t in self.sent]


class FakeSocket:
    """Minimal stand-in for a websockets client connection."""

    def __init__(self, roster: Optional[list[str]] = None):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[str] = []
        self.closed = False
        self.fail_send = False
        self._roster = roster

    async def send(self, text: str) -> None:
        if self.fail_send:
            raise OSError("broken pipe")
        self.sent.append(text)
        if self._roster is not None and json.loads(text).get("messageType") == "register":
            self.push({"messageType": "users", "dataArray": self._roster})

    def push(self, frame) -> None:
        self.incoming.put_nowait(frame if isinstance(frame, (str, bytes)) else json.dumps(frame))

    def hang_up(self) -> None:
        self.incoming.put_nowait(None)

    async def close(self) -> None:
        self.closed = True
        self.incoming.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self.incoming.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


class FakeServer:
    def __init__(self):
        self.sockets: list[FakeSocket] = []
        self.urls: list[str] = []
        self.roster: Optional[list[str]] = None
        self.refuse = False

    async def connect(self, url: str, open_timeout: Optional[float] = None) -> FakeSocket:
        self.urls.append(url)
        if self.refuse:
            raise OSError("connection refused")
        sock = FakeSocket(self.roster)
        self.sockets.append(sock)
        return sock

    @property
    def socket(self) -> FakeSocket:
        return self.sockets[-1]


async def drain(rounds: int = 10) -> None:
    """Let background reader/sender tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def bus() -> BroadcastBus:
    return BroadcastBus()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fake_server(monkeypatch) -> FakeServer:
    server = FakeServer()
    monkeypatch.setattr(ws_module, "websockets", SimpleNamespace(connect=server.connect))
    return server
