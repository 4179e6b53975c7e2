"""
Chat models — transcript entries, roster entries and the client-visible snapshot.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

AVATAR_URL_TEMPLATE = "https://avatars.dicebear.com/api/adventurer-neutral/{}.svg"
IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".gif", ".webp")


def avatar_url_for(name: str) -> str:
    """Deterministic avatar URL for a participant name."""
    return AVATAR_URL_TEMPLATE.format(quote(name, safe=""))


class ChatMessage(BaseModel):
    """Nested payload of an inbound message frame: {from, message, timestamp?}"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sender: str = Field(alias="from")
    body: str = Field(alias="message")
    sent_at: Optional[str] = Field(default=None, alias="timestamp")

    @property
    def is_image(self) -> bool:
        return self.body.startswith("http") and self.body.endswith(IMAGE_SUFFIXES)


class Participant(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    avatar_url: str
    online: bool = True

    @classmethod
    def named(cls, name: str, online: bool = True) -> Participant:
        return cls(name=name, avatar_url=avatar_url_for(name), online=online)


class ChatState(BaseModel):
    """Snapshot handed to presentation. Replaced, never mutated, on every update."""

    model_config = ConfigDict(frozen=True)

    roster: tuple[Participant, ...] = ()
    transcript: tuple[ChatMessage, ...] = ()
    connected: bool = False
    last_error: Optional[str] = None

    @classmethod
    def empty(cls) -> ChatState:
        return cls()

    def participant_for(self, name: str) -> Participant:
        """Roster entry for a sender; names absent from the roster come back offline."""
        for participant in self.roster:
            if participant.name == name:
                return participant
        return Participant.named(name, online=False)
