"""Data models for the conversation transcript.

These models define the structure of rendered messages and of the
per-event change report, independent of how events reach the reconciler.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Speaker of a conversational turn."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One conversational turn.

    The id is either the peer-assigned response id (assistant turns) or the
    conversation item id (user turns) and is the reconciliation key.
    """

    id: str = Field(description="Response id or conversation item id")
    role: Role = Field(description="Speaker of this turn")
    text: str = Field(default="", description="Accumulated text content")
    is_streaming: bool = Field(default=True, description="True while more deltas are expected")
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the message was first observed"
    )


class MessageListDelta(BaseModel):
    """What a single ingest call did to the message list."""

    added: list[str] = Field(default_factory=list, description="Ids appended by this event")
    updated: list[str] = Field(default_factory=list, description="Ids mutated in place by this event")
    error: str | None = Field(default=None, description="Error surfaced by this event")
    dropped: bool = Field(default=False, description="The frame was malformed and dropped")
    ignored: bool = Field(default=False, description="The event type is not handled")

    @property
    def changed(self) -> bool:
        """Whether the message list was modified."""
        return bool(self.added or self.updated)


class TranscriptState(BaseModel):
    """Reconciler-owned state.

    `index` maps message ids to their fixed position in `messages`.
    """

    messages: list[Message] = Field(default_factory=list)
    index: dict[str, int] = Field(default_factory=dict)
    error: str | None = Field(default=None)

    def get(self, message_id: str) -> Message | None:
        position = self.index.get(message_id)
        if position is None:
            return None
        return self.messages[position]

    def append(self, message: Message) -> None:
        """Append a message, fixing its position for the rest of the session."""
        if message.id in self.index:
            raise ValueError(f"Message {message.id!r} already exists")
        self.index[message.id] = len(self.messages)
        self.messages.append(message)

    def snapshot(self) -> tuple[Message, ...]:
        """Return detached copies of the messages for rendering."""
        return tuple(message.model_copy() for message in self.messages)
