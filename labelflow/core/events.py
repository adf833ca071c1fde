from collections import defaultdict
from typing import Any, Callable

from labelflow.util import logging

Listener = Callable[..., Any]


class EventBus:
    """
    Explicit publish/subscribe used instead of reactive state tracking.
    Listeners run synchronously in subscription order.
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        self._listeners[event].append(listener)

        def unsubscribe():
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

        return unsubscribe

    def publish(self, event: str, *args: Any, **kwargs: Any):
        logging.debug15(f"Event: {event}")
        # Copy so listeners can unsubscribe while being notified
        for listener in list(self._listeners.get(event, ())):
            listener(*args, **kwargs)
