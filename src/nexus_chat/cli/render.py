"""Terminal rendering of ChatState changes."""

from typing import Optional

from rich.console import Console
from rich.text import Text

from nexus_chat.models.chat import ChatMessage, ChatState, Participant


def format_roster(state: ChatState) -> Text:
    text = Text(f"{len(state.roster)} online: ", style="cyan")
    text.append(", ".join(p.name for p in state.roster) or "-", style="bold")
    return text


def format_message(message: ChatMessage, sender: Participant) -> Text:
    text = Text()
    if message.sent_at:
        text.append(f"[{message.sent_at}] ", style="dim")
    text.append(sender.name, style="bold cyan" if sender.online else "dim cyan")
    text.append(": ")
    if message.is_image:
        text.append("[image] ", style="magenta")
        text.append(message.body, style=f"link {message.body}")
    else:
        text.append(message.body)
    return text


class StateRenderer:
    """Change listener printing what differs from the previously seen state."""

    def __init__(self, console: Console):
        self._console = console
        self._last: Optional[ChatState] = None

    def __call__(self, state: ChatState) -> None:
        previous = self._last or ChatState.empty()
        self._last = state

        if state.connected != previous.connected:
            if state.connected:
                self._console.print("[green]● connected[/green]")
            else:
                self._console.print("[red]● disconnected[/red]")
        if state.roster != previous.roster:
            self._console.print(format_roster(state))
        for message in state.transcript[len(previous.transcript):]:
            self._console.print(format_message(message, state.participant_for(message.sender)))
        if state.last_error and state.last_error != previous.last_error:
            self._console.print(Text(f"ERROR: {state.last_error}", style="red"))
