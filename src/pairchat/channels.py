"""Channel projection: per-peer views derived from a merged message set.

Everything here is a pure function of its inputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pairchat.models import ChannelSummary, Message, User


def in_channel(message: Message, current_user: str, peer: str) -> bool:
    """True if the message was exchanged between current_user and peer."""
    return (message.sender == current_user and message.receiver == peer) or (
        message.sender == peer and message.receiver == current_user
    )


def channel_messages(all_messages: Iterable[Message], current_user: str, peer: str) -> list[Message]:
    """Messages between current_user and peer, in input order."""
    return [m for m in all_messages if in_channel(m, current_user, peer)]


def latest_text(all_messages: Iterable[Message], current_user: str, peer: str) -> str | None:
    """Text of the most recent channel message, or None for an empty channel."""
    messages = channel_messages(all_messages, current_user, peer)
    if not messages:
        return None
    # stable sort keeps the later-inserted message last on timestamp ties
    return sorted(messages, key=lambda m: m.timestamp)[-1].text


def channel_summaries(
    all_messages: Sequence[Message],
    users: Iterable[User],
    current_user: str,
) -> list[ChannelSummary]:
    """One summary per peer (every user except current_user), in user order."""
    return [
        ChannelSummary(peer=user.name, latest_text=latest_text(all_messages, current_user, user.name))
        for user in users
        if user.name != current_user
    ]
