"""
Integration tests against a running chat server.

Requires environment variables:
  NEXUS_INTEGRATION  — set to enable
  NEXUS_SERVER_URL   — (optional) defaults to ws://127.0.0.1:8080

Run: NEXUS_INTEGRATION=1 pytest tests/integration/ -v
"""

import asyncio
import os
import uuid

import pytest

from nexus_chat import AsyncNexusChat

SKIP = not os.environ.get("NEXUS_INTEGRATION")
SERVER_URL = os.environ.get("NEXUS_SERVER_URL", "ws://127.0.0.1:8080")

pytestmark = pytest.mark.skipif(SKIP, reason="NEXUS_INTEGRATION not set")


def unique_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


class TestJoin:
    """Registration and roster"""

    @pytest.mark.asyncio
    async def test_join_lists_self_in_roster(self):
        name = unique_name("it")
        client = AsyncNexusChat(SERVER_URL)
        await client.connect(name)
        assert await client.wait_until_joined(timeout=10.0)
        assert name in [p.name for p in client.state.roster]
        assert client.state.last_error is None
        await client.disconnect()


class TestMessaging:
    """Message relay between two clients"""

    @pytest.mark.asyncio
    async def test_message_relayed_to_other_client(self):
        sender_name, reader_name = unique_name("tx"), unique_name("rx")
        sender, reader = AsyncNexusChat(SERVER_URL), AsyncNexusChat(SERVER_URL)
        await reader.connect(reader_name)
        await sender.connect(sender_name)
        assert await reader.wait_until_joined(timeout=10.0)
        assert await sender.wait_until_joined(timeout=10.0)

        body = f"ping {uuid.uuid4().hex}"
        sender.send_text(body)

        for _ in range(50):
            if any(m.body == body for m in reader.state.transcript):
                break
            await asyncio.sleep(0.1)
        received = [m for m in reader.state.transcript if m.body == body]
        assert received and received[0].sender == sender_name

        await sender.disconnect()
        await reader.disconnect()
