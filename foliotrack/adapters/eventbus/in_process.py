from __future__ import annotations

import logging
import threading
from typing import Callable, TypeVar

EventT = TypeVar("EventT")
EventHandler = Callable[[EventT], None]

logger = logging.getLogger(__name__)


class InProcessEventBus:
    """Synchronous fan-out; handlers run on the publishing thread."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[type, EventHandler]] = []
        self._lock = threading.Lock()

    def publish(self, event: object) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for event_type, handler in subscribers:
            if isinstance(event, event_type):
                self._dispatch(handler, event)

    def subscribe(self, event_type: type[EventT], handler: EventHandler[EventT]) -> Callable[[], None]:
        entry = (event_type, handler)
        with self._lock:
            self._subscribers.append(entry)

        def _unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return _unsubscribe

    @staticmethod
    def _dispatch(handler: EventHandler, event: object) -> None:
        try:
            handler(event)
        except Exception:
            logger.exception(
                "Event handler error (event=%s, handler=%s)",
                type(event).__name__,
                _handler_name(handler),
            )


def _handler_name(handler: EventHandler) -> str:
    name = getattr(handler, "__name__", None)
    if name:
        return name
    return handler.__class__.__name__
