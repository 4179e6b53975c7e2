"""
Broadcast bus — fan-out of inbound frames to every subscriber.

The transport channel is the only publisher. Each subscriber receives every
frame published while it is subscribed, once, in publish order. Frames
published before a subscriber exists are not replayed.
"""

import logging
from collections import deque
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FrameHandler = Callable[[str], None]


class Subscription:
    """Handle returned by BroadcastBus.subscribe(). Close it to stop delivery."""

    __slots__ = ("_bus", "_handler", "_active")

    def __init__(self, bus: "BroadcastBus", handler: FrameHandler):
        self._bus = bus
        self._handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if self._active:
            self._active = False
            self._bus._release(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Subscription(active={self._active!r})"


class BroadcastBus:
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._pending: deque[str] = deque()
        self._dispatching = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, handler: FrameHandler) -> Subscription:
        subscription = Subscription(self, handler)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, text: str) -> None:
        """Deliver a frame to all current subscribers.

        A publish issued from inside a handler is queued behind the frame being
        delivered, so every subscriber observes the same order.
        """
        self._pending.append(text)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._dispatching = False

    def _deliver(self, text: str) -> None:
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription._handler(text)
            except Exception:
                logger.exception("Bus subscriber %r failed", subscription._handler)

    def _release(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def close(self, subscription: Optional[Subscription] = None) -> None:
        """Release one subscription, or all of them."""
        if subscription is not None:
            subscription.close()
            return
        for sub in list(self._subscriptions):
            sub.close()
