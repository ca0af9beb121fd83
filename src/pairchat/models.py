"""Pydantic models for pairchat entities.

These models are shared by the backend store, the HTTP API and the client,
and define the JSON wire format.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from ulid import ULID


# =============================================================================
# Helper Functions
# =============================================================================


def generate_id() -> str:
    """Generate a new ULID for entities."""
    return str(ULID())


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(datetime.now().timestamp() * 1000)


def display_time(timestamp: int) -> str:
    """Format an epoch-milliseconds timestamp as local ``HH:MM``."""
    return datetime.fromtimestamp(timestamp / 1000).strftime("%H:%M")


# =============================================================================
# Entity Models
# =============================================================================


class User(BaseModel):
    """A named participant. ``name`` is what channels are keyed on."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class Message(BaseModel):
    """A single text message between two users.

    ``timestamp`` (epoch milliseconds) is the ordering key; ``time`` is only
    for display. ``window_id`` names the session that created the message and
    is serialized as ``windowId``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    sender: str
    receiver: str
    text: str
    time: str
    timestamp: int
    window_id: str = Field("", alias="windowId")

    def to_wire(self) -> dict:
        """JSON-compatible dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class MessageCreate(BaseModel):
    """Inbound message body; the server fills in anything left out."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    sender: str
    receiver: str
    text: str
    time: str | None = None
    timestamp: int | None = None
    window_id: str | None = Field(None, alias="windowId")

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Reject empty or whitespace-only text."""
        if not v.strip():
            raise ValueError("text must not be empty")
        return v

    def enrich(self) -> Message:
        """Build a complete Message, assigning server-side defaults."""
        timestamp = self.timestamp if self.timestamp is not None else now_ms()
        return Message(
            id=self.id if self.id and self.id.strip() else generate_id(),
            sender=self.sender,
            receiver=self.receiver,
            text=self.text,
            time=self.time or display_time(timestamp),
            timestamp=timestamp,
            window_id=self.window_id or "",
        )


class ChannelSummary(BaseModel):
    """One row of the channel list: a peer and their latest message text."""

    peer: str
    latest_text: str | None = None


# Seeded users, shared by the backend's first boot and the client's fallback
DEFAULT_USERS: tuple[User, ...] = (
    User(id="1", name="Alice"),
    User(id="2", name="Bob"),
    User(id="3", name="Charlie"),
)

message_adapter: TypeAdapter[Message] = TypeAdapter(Message)
message_list_adapter: TypeAdapter[list[Message]] = TypeAdapter(list[Message])
user_list_adapter: TypeAdapter[list[User]] = TypeAdapter(list[User])
