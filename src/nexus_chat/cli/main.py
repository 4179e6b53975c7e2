"""
Nexus chat CLI — `nexus` command.

Commands:
  nexus login <username>   Store identity and server URL
  nexus status             Show stored identity
  nexus logout             Forget stored identity
  nexus chat               Interactive REPL chat
  nexus send <message>     One-shot message
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install nexus-chat[cli]")

from nexus_chat.client import AsyncNexusChat
from nexus_chat.transport.websocket import DEFAULT_SERVER_URL

console = Console()
CONFIG_FILE = Path.home() / ".nexus" / "config.json"
SERVER_URL_ENV = "NEXUS_SERVER_URL"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _server_url(override: Optional[str] = None) -> str:
    """Command option, then environment, then stored config, then the default."""
    if override:
        return override
    return os.environ.get(SERVER_URL_ENV) or _load_config().get("server_url") or DEFAULT_SERVER_URL


def _username(override: Optional[str] = None) -> str:
    username = override or _load_config().get("username")
    if not username:
        console.print("[red]No username. Run `nexus login <username>` first.[/red]")
        raise SystemExit(1)
    return username


def _get_client(server: Optional[str] = None) -> AsyncNexusChat:
    return AsyncNexusChat(server_url=_server_url(server))


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """Nexus chat CLI — talk to a nexus chat server from the terminal."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# Register subcommands from separate modules
from nexus_chat.cli.login import login, logout, status
from nexus_chat.cli.chat import chat_cmd, send_cmd

main.add_command(login)
main.add_command(logout)
main.add_command(status)
main.add_command(chat_cmd)
main.add_command(send_cmd)


if __name__ == "__main__":
    main()
