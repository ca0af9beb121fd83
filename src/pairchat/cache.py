"""Client-side message cache shared by every session of one profile.

The cache is a single JSON array of messages in ``allMessages.json`` under
the client cache directory. Sessions pointing at the same directory share
it. Every write made through an instance is broadcast on its ``changed``
signal; writes from other instances or processes are picked up by
``check_for_changes``.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from pairchat.logging import get_logger
from pairchat.models import Message, message_list_adapter
from pairchat.signals import ChangeSignal
from pairchat.store import atomic_write_json

log = get_logger("cache")

CACHE_KEY = "allMessages"


class LocalCache:
    """Persisted message list with a change signal.

    Attributes:
        path: Location of the cache file.
        changed: Signal emitted with the new message list after each write.
    """

    def __init__(self, cache_dir: Path | str, key: str = CACHE_KEY) -> None:
        self.path = Path(cache_dir) / f"{key}.json"
        self.changed: ChangeSignal[list[Message]] = ChangeSignal()
        self._fingerprint = self.fingerprint()

    def fingerprint(self) -> tuple[int, int, int] | None:
        """Identify the file's current version, or None when it is absent.

        Atomic writes replace the file, so the inode changes even when two
        writes land within one mtime tick.
        """
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        return (st.st_mtime_ns, st.st_size, st.st_ino)

    def read(self) -> list[Message]:
        """Return the cached messages.

        A missing cache is empty. A corrupt cache is logged and treated as
        empty; it is replaced on the next write.
        """
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
            return message_list_adapter.validate_python(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            log.warning("cache_unreadable", path=str(self.path), error=str(e))
            return []

    def write(self, messages: list[Message]) -> None:
        """Replace the cached messages and notify subscribers."""
        atomic_write_json(self.path, [m.to_wire() for m in messages])
        self._fingerprint = self.fingerprint()
        log.debug("cache_written", path=str(self.path), count=len(messages))
        self.changed.emit(list(messages))

    def check_for_changes(self) -> bool:
        """Emit ``changed`` if another writer replaced the file.

        Writes made through this instance are already broadcast and do not
        count. Returns True when a change was emitted.
        """
        current = self.fingerprint()
        if current == self._fingerprint:
            return False
        self._fingerprint = current
        messages = self.read()
        log.debug("cache_changed_externally", path=str(self.path), count=len(messages))
        self.changed.emit(messages)
        return True
