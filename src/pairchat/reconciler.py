"""Reconciliation of the local message cache with the backend.

The local cache is the durability fallback: fetches merge remote results
into it and write the merged set back, and sends land in it before the
backend is contacted. Remote failures never propagate as exceptions from
here; they are logged as warnings and reported on the result.

Sent messages are never removed from the cache, even when the backend
rejects them or answers with a different id. A user never sees a message
they sent disappear.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pairchat.errors import RemoteError
from pairchat.logging import get_logger
from pairchat.models import DEFAULT_USERS, Message, User

if TYPE_CHECKING:
    from pairchat.cache import LocalCache
    from pairchat.client import ChatApiClient
    from pairchat.session import SessionContext

log = get_logger("reconciler")


def merge(local: Iterable[Message], remote: Iterable[Message]) -> list[Message]:
    """Union two message sequences, de-duplicated by id and ordered by timestamp.

    When both sides carry the same id the remote copy wins, but the entry
    keeps the position of its first occurrence. The result is sorted by
    ``timestamp`` with a stable sort, so ties keep insertion order.
    """
    by_id: dict[str, Message] = {}
    for message in local:
        by_id[message.id] = message
    for message in remote:
        by_id[message.id] = message
    return sorted(by_id.values(), key=lambda m: m.timestamp)


@dataclass
class SyncResult:
    """Outcome of a fetch: the merged view plus the remote error, if any."""

    messages: list[Message]
    error: RemoteError | None = None

    @property
    def degraded(self) -> bool:
        """True when the result came from the local cache alone."""
        return self.error is not None


@dataclass
class SendResult:
    """Outcome of a send.

    ``confirmed`` is False when the message is only committed locally.
    """

    message: Message
    confirmed: bool
    error: RemoteError | None = None
    messages: list[Message] = field(default_factory=list)


class Reconciler:
    """Keeps the local cache and the backend converging.

    Attributes:
        cache: Shared local message cache.
        api: Backend client.
    """

    def __init__(self, cache: "LocalCache", api: "ChatApiClient") -> None:
        self.cache = cache
        self.api = api

    def merge_into_cache(self, remote: Iterable[Message]) -> list[Message]:
        """Merge remote messages into the cache and write the result through."""
        merged = merge(self.cache.read(), remote)
        self.cache.write(merged)
        return merged

    def append_local(self, message: Message) -> list[Message]:
        """Optimistically add a message to the cache unless its id is present."""
        current = self.cache.read()
        if any(m.id == message.id for m in current):
            return current
        return self.merge_into_cache([message])

    async def fetch_all(self, session: "SessionContext") -> SyncResult:
        """Refresh the cache from the backend for the session's user.

        Returns the merged set on success, or the untouched local cache when
        the backend is unreachable, rejects the call, or answers garbage.
        """
        try:
            remote = await self.api.get_messages(session.current_user)
        except RemoteError as e:
            log.warning(
                "messages_fetch_failed",
                user=session.current_user,
                error_type=type(e).__name__,
                error=str(e),
            )
            return SyncResult(messages=self.cache.read(), error=e)

        merged = self.merge_into_cache(remote)
        log.debug(
            "messages_fetched",
            user=session.current_user,
            remote=len(remote),
            merged=len(merged),
        )
        return SyncResult(messages=merged)

    async def send(self, session: "SessionContext", receiver: str, text: str) -> SendResult:
        """Compose a message from the session and send it."""
        return await self.send_message(session.compose(receiver, text))

    async def send_message(self, message: Message) -> SendResult:
        """Commit a message locally, then try to persist it remotely.

        The local append happens before any network call. On remote success
        the server's copy replaces the optimistic one when the ids match;
        a server-assigned id leaves both entries in place.
        """
        messages = self.append_local(message)

        try:
            saved = await self.api.post_message(message)
        except RemoteError as e:
            log.warning(
                "send_unconfirmed",
                message_id=message.id,
                receiver=message.receiver,
                error_type=type(e).__name__,
                error=str(e),
            )
            return SendResult(message=message, confirmed=False, error=e, messages=messages)

        messages = self.merge_into_cache([saved])
        if saved.id != message.id:
            log.info("send_id_reassigned", local_id=message.id, remote_id=saved.id)
        log.info("send_confirmed", message_id=saved.id, receiver=saved.receiver)
        return SendResult(message=saved, confirmed=True, messages=messages)

    async def fetch_users(self) -> list[User]:
        """Fetch users, falling back to the seeded defaults on any failure."""
        try:
            users = await self.api.get_users()
        except RemoteError as e:
            log.warning("users_fetch_failed", error_type=type(e).__name__, error=str(e))
            return list(DEFAULT_USERS)
        return users or list(DEFAULT_USERS)
