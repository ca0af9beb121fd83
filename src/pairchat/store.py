"""Flat JSON document store for the pairchat backend.

The whole state lives in one JSON document with two collections:

    {"users": [{"id": ..., "name": ...}, ...], "messages": [...]}

Users are seeded on first boot and never change. Messages are append-only.
Every append rewrites the full document through a temporary sibling file and
``os.replace``, so a failed write leaves the previous document intact.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from pairchat.errors import StoreError
from pairchat.logging import get_logger
from pairchat.models import DEFAULT_USERS, Message, User, message_list_adapter, user_list_adapter

if TYPE_CHECKING:
    from pairchat.config import Config

log = get_logger("store")


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON to path by replacing it with a fully written temp file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


class JsonStore:
    """Users and messages persisted to a single JSON file.

    Attributes:
        path: Location of the JSON document.
    """

    def __init__(self, path: Path | str, seed_users: Iterable[User] = DEFAULT_USERS) -> None:
        """Open the store, creating and seeding the document on first boot.

        Args:
            path: Location of the JSON document.
            seed_users: Users written when the document does not exist yet.

        Raises:
            StoreError: If the document exists but cannot be read or parsed,
                or the first-boot document cannot be written.
        """
        self.path = Path(path)
        self._lock = threading.Lock()

        if self.path.exists():
            self._users, self._messages = self._load()
            log.info(
                "store_loaded",
                path=str(self.path),
                users=len(self._users),
                messages=len(self._messages),
            )
        else:
            self._users = list(seed_users)
            self._messages: list[Message] = []
            self._write(self._messages)
            log.info("store_initialized", path=str(self.path), users=len(self._users))

    @classmethod
    def from_config(cls, config: "Config") -> "JsonStore":
        """Open the store at the configured location with the configured seed."""
        return cls(config.store_path, seed_users=config.users)

    def _load(self) -> tuple[list[User], list[Message]]:
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read store document {self.path}: {e}") from e

        if not isinstance(document, dict):
            raise StoreError(f"Store document {self.path} is not a JSON object")

        try:
            users = user_list_adapter.validate_python(document.get("users") or [])
            messages = message_list_adapter.validate_python(document.get("messages") or [])
        except ValidationError as e:
            raise StoreError(f"Store document {self.path} is invalid: {e}") from e

        if not users:
            raise StoreError(f"Store document {self.path} has no users")
        return users, messages

    def _write(self, messages: list[Message]) -> None:
        document = {
            "users": [user.model_dump(mode="json") for user in self._users],
            "messages": [message.to_wire() for message in messages],
        }
        try:
            atomic_write_json(self.path, document)
        except OSError as e:
            log.error("store_write_failed", path=str(self.path), error=str(e))
            raise StoreError(f"Cannot write store document {self.path}: {e}") from e

    def list_users(self) -> list[User]:
        """Return the seeded users."""
        return list(self._users)

    def get_user(self, name: str) -> User | None:
        """Find a user by name."""
        for user in self._users:
            if user.name == name:
                return user
        return None

    def list_messages(self, user: str | None = None) -> list[Message]:
        """Return persisted messages in append order.

        Args:
            user: When given, only messages this user sent or received.
        """
        with self._lock:
            messages = list(self._messages)
        if user is None:
            return messages
        return [m for m in messages if m.sender == user or m.receiver == user]

    def append_message(self, message: Message) -> Message:
        """Persist a message and return it.

        Duplicate ids are not rejected here; de-duplication happens on the
        client when merging.

        Raises:
            StoreError: If the document cannot be written. The in-memory and
                on-disk state are left as they were.
        """
        with self._lock:
            updated = [*self._messages, message]
            self._write(updated)
            self._messages = updated
        log.info(
            "message_appended",
            message_id=message.id,
            sender=message.sender,
            receiver=message.receiver,
        )
        return message

    def check(self) -> bool:
        """Return True if the document is present and readable."""
        try:
            self._load()
        except StoreError:
            return False
        return True
