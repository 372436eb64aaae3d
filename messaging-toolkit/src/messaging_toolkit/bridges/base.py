"""
Shared pieces for event bridges.

A bridge observes a 'MessageEventStream' for the lifetime of one open
conversation view and turns selected events into fire-and-forget side
effects. 'Bridge' owns the subscription bookkeeping; subclasses decide
whether they are active for the view and what to do with each event.
"""

from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Self

from messaging_toolkit.transport.events import MessageEvent, MessageEventStream, MessageEventType, Subscription
from messaging_toolkit.utils.tasks import BackgroundTasks


class BoundedIdSet:
    """Insertion-ordered set of ids that forgets the oldest entry once 'max_size' is reached."""

    def __init__(self, max_size: int = 1024) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._ids: OrderedDict[str, None] = OrderedDict()

    def add(self, item: str) -> None:
        self._ids[item] = None
        self._ids.move_to_end(item)
        while len(self._ids) > self.max_size:
            self._ids.popitem(last=False)

    def clear(self) -> None:
        self._ids.clear()

    def __contains__(self, item: object) -> bool:
        return item in self._ids

    def __len__(self) -> int:
        return len(self._ids)


class Bridge(ABC):
    event_type: MessageEventType

    def __init__(self, stream: MessageEventStream, tasks: BackgroundTasks | None = None) -> None:
        self.stream = stream
        self.tasks = tasks or BackgroundTasks()
        self._subscription: Subscription | None = None

    @property
    def attached(self) -> bool:
        return self._subscription is not None

    @abstractmethod
    def is_active(self) -> bool:
        """Whether the bridge should listen at all for the current view."""
        pass

    @abstractmethod
    def handle(self, event: MessageEvent) -> None:
        pass

    def attach(self) -> Self:
        if self._subscription is None and self.is_active():
            self._subscription = self.stream.subscribe(self.event_type, self.handle)
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
