"""Publish/subscribe channel for meet state changes."""

import logging
from collections import defaultdict

logger = logging.getLogger(__name__)


class EventBus:
    """
    Named-event pub/sub. Each meet owns its own instance.

    Handlers are called synchronously in subscription order with a single
    payload argument. A failing handler is logged and does not prevent the
    remaining handlers from running.
    """

    def __init__(self):
        self._listeners = defaultdict(list)

    def on(self, event_name: str, handler):
        """
        Subscribes `handler` to `event_name`.

        Returns:
            Callable[[], None]: Unsubscribes the handler when called.
        """
        self._listeners[event_name].append(handler)
        return lambda: self.off(event_name, handler)

    def off(self, event_name: str, handler) -> None:
        self._listeners[event_name] = [
            h for h in self._listeners[event_name] if h is not handler
        ]

    def emit(self, event_name: str, payload=None) -> None:
        for handler in list(self._listeners[event_name]):
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler for %r failed", event_name)
