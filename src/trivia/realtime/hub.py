"""In-process event hub.

Topics are plain strings ("activities", "notifications:<user_id>"). Delivery
is at-most-once and best effort: a handler that raises is logged and the
remaining handlers still run. Handlers of a topic are awaited one after the
other, so every subscriber sees events in the order they were published.
"""

from __future__ import annotations

import itertools
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

logger = structlog.get_logger()

Handler = Callable[[str, dict[str, Any]], Awaitable[None]]


class Subscription:
    """Handle returned by EventHub.subscribe; call unsubscribe() to stop delivery."""

    def __init__(self, hub: EventHub, topic: str, sub_id: int) -> None:
        self.hub = hub
        self.topic = topic
        self.sub_id = sub_id
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.hub._remove(self.topic, self.sub_id)


class EventHub:
    """Topic -> handlers registry with best-effort fan-out."""

    def __init__(self) -> None:
        self._handlers: dict[str, dict[int, Handler]] = defaultdict(dict)
        self._ids = itertools.count(1)

    def subscribe(self, topic: str, handler: Handler) -> Subscription:
        sub_id = next(self._ids)
        self._handlers[topic][sub_id] = handler
        logger.debug("hub_subscribed", topic=topic, sub_id=sub_id)
        return Subscription(self, topic, sub_id)

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, {}))

    async def publish(self, topic: str, payload: dict[str, Any]) -> int:
        """Deliver payload to every current subscriber of topic.

        Returns the number of handlers that completed without error.
        """
        handlers = list(self._handlers.get(topic, {}).items())
        delivered = 0
        for sub_id, handler in handlers:
            try:
                await handler(topic, payload)
                delivered += 1
            except Exception:
                logger.warning("hub_handler_failed", topic=topic, sub_id=sub_id, exc_info=True)
        return delivered

    def _remove(self, topic: str, sub_id: int) -> None:
        handlers = self._handlers.get(topic)
        if handlers is None:
            return
        handlers.pop(sub_id, None)
        if not handlers:
            del self._handlers[topic]
        logger.debug("hub_unsubscribed", topic=topic, sub_id=sub_id)


# Global singleton
hub = EventHub()
