"""
Notifications for the presentation layer.

The engine publishes `PathFound` and `PathFailed` events on an `EventBus`;
the UI subscribes and decides how to show them. Delivery is synchronous, on
the caller's thread, in subscription order.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Tuple, Union

from pathcanvas.path_engine import PathError, SearchOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathFound:
    cost: int
    path: Tuple[int, ...]

    @property
    def name(self) -> str:
        return "PathFound"


@dataclass(frozen=True)
class PathFailed:
    error: PathError

    @property
    def name(self) -> str:
        return self.error.value


Event = Union[PathFound, PathFailed]
Listener = Callable[[Event], None]


def event_for(outcome: SearchOutcome) -> Event:
    if outcome.ok:
        return PathFound(cost=outcome.result.cost, path=outcome.result.path)
    return PathFailed(error=outcome.error)


class EventBus:
    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: Event) -> None:
        logger.debug(f"Emitting {event.name}")
        for listener in list(self._listeners):
            listener(event)
