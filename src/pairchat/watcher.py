"""Polling watcher for a channel view or the channel list.

Polls ``fetch_all`` on a fixed interval with APScheduler and re-projects
whenever the shared cache is written, by this process or by another one. Attaching and detaching are explicit,
so a view that goes away leaves no timer or listener behind.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pairchat.channels import channel_messages, channel_summaries
from pairchat.logging import get_logger
from pairchat.models import ChannelSummary, Message, User

if TYPE_CHECKING:
    from pairchat.reconciler import Reconciler
    from pairchat.session import SessionContext
    from pairchat.signals import Subscription

log = get_logger("watcher")

View = Union[list[Message], list[ChannelSummary]]


class ChannelWatcher:
    """Keeps one rendered view up to date.

    With a ``peer`` the view is the channel's messages; without one it is the
    channel list (one summary per other user).

    Attributes:
        reconciler: Reconciler used for each poll.
        session: Session whose view this is.
        peer: Channel peer, or None for the channel list.
        interval: Poll interval in seconds.
        change_check_interval: Seconds between checks for cache writes made
            by other processes.
    """

    JOB_ID = "channel_poll"
    CHANGE_JOB_ID = "cache_check"

    def __init__(
        self,
        reconciler: "Reconciler",
        session: "SessionContext",
        on_update: Callable[[View], None],
        peer: str | None = None,
        interval: float = 2.0,
        change_check_interval: float = 0.5,
    ) -> None:
        if interval <= 0 or change_check_interval <= 0:
            raise ValueError("intervals must be positive")
        self.reconciler = reconciler
        self.session = session
        self.peer = peer
        self.interval = interval
        self.change_check_interval = change_check_interval
        self._on_update = on_update
        self._users: list[User] = []
        self._subscription: "Subscription[list[Message]] | None" = None
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def attached(self) -> bool:
        return self._scheduler is not None

    def project(self, messages: list[Message]) -> View:
        """Derive this watcher's view from a merged message set."""
        if self.peer is not None:
            return channel_messages(messages, self.session.current_user, self.peer)
        return channel_summaries(messages, self._users, self.session.current_user)

    def _render(self, messages: list[Message]) -> None:
        self._on_update(self.project(messages))

    async def refresh(self) -> None:
        """Fetch and merge once.

        A successful fetch writes the cache, which renders through the
        ``changed`` subscription. Only the degraded path renders directly.
        """
        result = await self.reconciler.fetch_all(self.session)
        if result.degraded:
            log.debug("watcher_using_local_cache", user=self.session.current_user, peer=self.peer)
            self._render(result.messages)

    async def _check_cache(self) -> None:
        # Coroutine so the scheduler runs it on the loop, not in a worker thread
        self.reconciler.cache.check_for_changes()

    async def attach(self) -> None:
        """Subscribe to cache changes and start polling.

        Must be awaited from inside a running event loop. The first refresh
        runs before this returns.
        """
        if self.attached:
            return

        if self.peer is None:
            self._users = await self.reconciler.fetch_users()

        self._subscription = self.reconciler.cache.changed.subscribe(self._render)

        self._scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,  # Combine missed polls
                "max_instances": 1,  # No overlapping polls
            },
            timezone=timezone.utc,
        )
        self._scheduler.add_job(
            self.refresh,
            trigger=IntervalTrigger(seconds=self.interval, timezone=timezone.utc),
            id=self.JOB_ID,
            next_run_time=datetime.now(timezone.utc) + timedelta(seconds=self.interval),
        )
        self._scheduler.add_job(
            self._check_cache,
            trigger=IntervalTrigger(seconds=self.change_check_interval, timezone=timezone.utc),
            id=self.CHANGE_JOB_ID,
        )
        self._scheduler.start()
        log.info(
            "watcher_attached",
            user=self.session.current_user,
            peer=self.peer,
            interval=self.interval,
        )

        await self.refresh()

    def detach(self) -> None:
        """Stop polling and drop the cache subscription. Safe to call twice."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        if self._subscription is not None:
            self.reconciler.cache.changed.unsubscribe(self._subscription)
            self._subscription = None
        log.info("watcher_detached", user=self.session.current_user, peer=self.peer)
