from __future__ import annotations

from collections import Counter
from typing import Callable

from raidline.contracts import EngineEvent, EventType

EngineEventHandler = Callable[[EngineEvent], None]


class EventBus:
    """Fan-out of engine events to observers, ahead of their execution.

    A handler registered with event types only sees those types; with none
    it sees everything.
    """

    def __init__(self) -> None:
        self._handlers: list[tuple[EngineEventHandler, frozenset[EventType]]] = []
        self._emitted: Counter[EventType] = Counter()

    def subscribe(self, handler: EngineEventHandler, *event_types: EventType) -> None:
        self._handlers.append((handler, frozenset(event_types)))

    def publish(self, event: EngineEvent) -> None:
        self._emitted[event.event_type] += 1
        for handler, wanted in self._handlers:
            if not wanted or event.event_type in wanted:
                handler(event)

    def emitted_count(self, event_type: EventType | None = None) -> int:
        if event_type is None:
            return sum(self._emitted.values())
        return self._emitted[event_type]

    def summary(self) -> dict[str, int]:
        return {event_type.value: count for event_type, count in sorted(self._emitted.items())}
