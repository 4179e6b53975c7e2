"""CLI: nexus chat, nexus send"""

import asyncio
import functools
import json
from typing import Optional

import click
from rich.console import Console

from nexus_chat.cli.render import StateRenderer
from nexus_chat.errors import NexusChatError

console = Console()


def _get_client(server: Optional[str] = None):
    from nexus_chat.cli.main import _get_client
    return _get_client(server)


def _username(override: Optional[str] = None) -> str:
    from nexus_chat.cli.main import _username
    return _username(override)


def _run(coro):
    from nexus_chat.cli.main import _run
    return _run(coro)


@click.command("chat")
@click.option("-u", "--username", default=None, help="Override the stored username")
@click.option("--server", default=None, help="Chat server WebSocket URL")
def chat_cmd(username: Optional[str], server: Optional[str]):
    """Interactive chat."""
    name = _username(username)

    async def _chat():
        client = _get_client(server)
        try:
            await client.connect(name)
        except NexusChatError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        client.on_change(StateRenderer(console))
        console.print(f"[cyan]Joining as {name}. Type your message (/quit to exit)[/cyan]\n")
        loop = asyncio.get_running_loop()
        prompt = functools.partial(click.prompt, "", prompt_suffix="> ", default="", show_default=False)
        try:
            while True:
                msg = await loop.run_in_executor(None, prompt)
                if msg.strip().lower() in ("/quit", "/exit"):
                    break
                client.send_text(msg)
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            await client.disconnect()

    _run(_chat())


@click.command("send")
@click.argument("message")
@click.option("-u", "--username", default=None, help="Override the stored username")
@click.option("--server", default=None, help="Chat server WebSocket URL")
@click.option("--timeout", default=10.0, show_default=True, help="Seconds to wait for the roster")
@click.option("--json-output", "--json", is_flag=True)
def send_cmd(message: str, username: Optional[str], server: Optional[str], timeout: float, json_output: bool):
    """Send a one-shot message."""
    name = _username(username)

    async def _send() -> int:
        client = _get_client(server)
        try:
            await client.connect(name)
        except NexusChatError as e:
            console.print(f"[red]{e}[/red]")
            return 1
        try:
            joined = await client.wait_until_joined(timeout)
            if joined:
                client.send_text(message)
            state = client.state
        finally:
            flushed = await client.disconnect()

        error = state.last_error
        if not joined:
            error = error or "no roster from server"
        elif not flushed:
            error = error or "connection closed before the message was written"
        if json_output:
            click.echo(json.dumps({
                "sent": error is None,
                "roster": [p.name for p in state.roster],
                "error": error,
            }))
        elif error is None:
            console.print(f"[green]Sent as {name}[/green] ({len(state.roster)} online)")
        else:
            console.print(f"[red]Not sent: {error}[/red]")
        return 0 if error is None else 1

    code = _run(_send())
    if code:
        raise SystemExit(code)
