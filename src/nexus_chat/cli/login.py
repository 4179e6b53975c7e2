"""CLI: nexus login|status|logout"""

from typing import Optional

import click
from rich.console import Console

console = Console()


def _load_config() -> dict:
    from nexus_chat.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from nexus_chat.cli.main import _save_config
    _save_config(cfg)


@click.command("login")
@click.argument("username")
@click.option("--server", default=None, help="Chat server WebSocket URL")
def login(username: str, server: Optional[str]):
    """Choose the username used to join the chat."""
    if not username.strip():
        raise click.BadParameter("username must not be empty", param_hint="USERNAME")
    cfg = _load_config()
    cfg["username"] = username
    if server:
        cfg["server_url"] = server
    _save_config(cfg)
    console.print(f"[green]Username set to {username}[/green]")


@click.command("status")
def status():
    """Show the stored username and server."""
    from nexus_chat.cli.main import _server_url
    cfg = _load_config()
    if cfg.get("username"):
        console.print(f"[green]Logged in[/green] as {cfg['username']} ({_server_url()})")
    else:
        console.print("[yellow]Not logged in. Run `nexus login <username>`.[/yellow]")


@click.command("logout")
def logout():
    """Forget the stored username."""
    _save_config({})
    console.print("[green]Logged out.[/green]")
