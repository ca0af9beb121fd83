"""Explicit per-session context for client operations."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pairchat.models import Message, display_time, generate_id, now_ms


class SessionContext(BaseModel):
    """Who is using this client session, and which session it is.

    One session corresponds to one open client (a browser tab in the web
    client). It is never persisted or shared.
    """

    model_config = ConfigDict(frozen=True)

    current_user: str
    window_id: str = Field(default_factory=generate_id)

    def compose(self, receiver: str, text: str, timestamp: int | None = None) -> Message:
        """Build a new outgoing message from this session."""
        ts = timestamp if timestamp is not None else now_ms()
        return Message(
            id=generate_id(),
            sender=self.current_user,
            receiver=receiver,
            text=text.strip(),
            time=display_time(ts),
            timestamp=ts,
            window_id=self.window_id,
        )
