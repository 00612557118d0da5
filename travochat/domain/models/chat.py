"""
Chat Models - Core conversation structures
==========================================
Pure data models for identity, session and messages without transport
dependencies.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
from typing import Iterator, List, Optional


class SessionState(str, Enum):
    """Session lifecycle states"""
    UNESTABLISHED = "unestablished"
    ACTIVE = "active"


class Identity(BaseModel):
    """Local participant: display name, email and server-assigned user id"""

    name: str = Field(default="", description="Display name, also used as message sender")
    email: str = Field(default="", description="Email the identity service keys users by")
    user_id: Optional[str] = Field(default=None, description="Server-assigned user id")

    @property
    def is_known(self) -> bool:
        return bool(self.email)


class Session(BaseModel):
    """
    Server-issued session authorizing the participant to send and receive.

    The state is derived from the id: any id <= 0 means the session is not
    established. Sessions are immutable; the orchestrator replaces its
    session when a new id is adopted.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(default=0, description="Server session id, <= 0 when unestablished")

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self.id > 0 else SessionState.UNESTABLISHED

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE


class Message(BaseModel):
    """A single conversation turn"""

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Message text")
    sender: str = Field(..., description="Display name of the author")
    session_id: int = Field(default=0, description="Session the message was sent in, 0 when untagged")
    received_at: Optional[datetime] = Field(default=None, description="Local arrival time for inbound messages")

    def to_wire(self) -> dict:
        """Outbound payload published to the message bus"""
        return {"content": self.content, "sender": self.sender, "session": self.session_id}

    def display_text(self, is_own: bool) -> str:
        """Own messages show the bare content; others are prefixed with the sender."""
        return self.content if is_own else f"{self.sender}: {self.content}"


class ConversationLog:
    """
    Append-only, ordered record of conversation turns.

    Insertion order is arrival/send order. Entries are never removed or
    reordered; readers get snapshots.
    """

    def __init__(self):
        self._messages: List[Message] = []

    def append(self, message: Message) -> int:
        """Append a message and return its position in the log."""
        self._messages.append(message)
        return len(self._messages) - 1

    def snapshot(self) -> List[Message]:
        return list(self._messages)

    @property
    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]
