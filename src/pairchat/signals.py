"""In-process publish/subscribe signal for cache changes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from pairchat.logging import get_logger

log = get_logger("signals")

T = TypeVar("T")


@dataclass(eq=False)
class Subscription(Generic[T]):
    callback: Callable[[T], None]

    def deliver(self, payload: T) -> None:
        self.callback(payload)


class ChangeSignal(Generic[T]):
    """Registers subscriptions and broadcasts payloads to all listeners.

    A failing listener is logged and skipped; it never stops delivery to the
    others or the emitter itself.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription[T]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Subscription[T]:
        subscription = Subscription(callback=callback)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription[T]) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return

    def emit(self, payload: T) -> None:
        for subscription in list(self._subscriptions):
            try:
                subscription.deliver(payload)
            except Exception:
                log.warning("signal_listener_failed", exc_info=True)

    def __len__(self) -> int:
        return len(self._subscriptions)
