"""
Protocol envelope — one JSON frame exchanged with the chat server.

Wire shape: {"messageType": ..., "dataArray": [...] | null, "data": ... | null}
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageKind(str, Enum):
    REGISTER = "register"
    USERS = "users"
    MESSAGE = "message"
    ERROR = "error"


class Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: MessageKind = Field(alias="messageType")
    items: Optional[list[str]] = Field(default=None, alias="dataArray")  # users
    payload: Optional[str] = Field(default=None, alias="data")           # register / message / error
