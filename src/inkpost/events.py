"""In-process change notification between independently rendered views."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum

from inkpost.log import get_logger

logger = get_logger(__name__)


class Topic(str, Enum):
    POSTS_CHANGED = "postsChanged"
    USERS_CHANGED = "usersChanged"
    # Another process rewrote the persisted collections
    STORAGE_CHANGED = "storageChanged"


Handler = Callable[[Topic], None]


class Subscription:
    """Handle returned by :meth:`ChangeNotifier.subscribe`.

    Cancelling twice is harmless. Using the subscription as a context
    manager cancels it on exit, so a view can tie it to its own lifetime.
    """

    def __init__(self, notifier: ChangeNotifier, topic: Topic, handler: Handler) -> None:
        self._notifier = notifier
        self.topic = topic
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._notifier._remove(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


class ChangeNotifier:
    """Synchronous publish/subscribe keyed by :class:`Topic`.

    Handlers receive only the topic and must re-read the store themselves.
    Same-topic handlers run in subscription order. A handler must not
    publish the topic it is handling.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[Topic, list[Subscription]] = {}

    def subscribe(self, topic: Topic, handler: Handler) -> Subscription:
        subscription = Subscription(self, topic, handler)
        self._subscriptions.setdefault(topic, []).append(subscription)
        return subscription

    @contextmanager
    def subscribed(self, topic: Topic, handler: Handler) -> Iterator[Subscription]:
        """Subscribe for the duration of a ``with`` block."""
        subscription = self.subscribe(topic, handler)
        try:
            yield subscription
        finally:
            subscription.cancel()

    def publish(self, topic: Topic) -> None:
        # Snapshot: subscribe/cancel during delivery applies to the next publish
        targets = list(self._subscriptions.get(topic, ()))
        logger.debug("change_published", topic=topic.value, subscribers=len(targets))
        for subscription in targets:
            if subscription.active:
                subscription.handler(topic)

    def subscriber_count(self, topic: Topic) -> int:
        return len(self._subscriptions.get(topic, ()))

    def _remove(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.topic, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
