"""
Message event stream.

Transport sessions surface message activity as events. 'MessageEventStream' is
the explicit subscription point the bridges attach to: a handler is
registered for one event type and receives every published event of that type
until its 'Subscription' is cancelled. Handlers are plain callables invoked in
registration order; they must not block, so anything slow is dispatched as a
background task by the handler itself.
"""

from collections.abc import Callable
from enum import StrEnum

from loguru import logger
from pydantic import BaseModel


class MessageEventType(StrEnum):
    MESSAGE_SENT = "message_sent"
    MESSAGE_RECEIVED = "message_received"


class MessageEvent(BaseModel):
    """
    A message observed on a transport thread.

    'id' and 'sender_id' are optional because transports may emit partial
    events (for instance before the server has acknowledged a send).
    """

    thread_id: str
    id: str | None = None
    sender_id: str | None = None
    content: str = ""


MessageHandler = Callable[[MessageEvent], None]


class Subscription:
    def __init__(self, stream: "MessageEventStream", event_type: MessageEventType, handler: MessageHandler) -> None:
        self.stream = stream
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.stream._remove(self)
            self.active = False


class MessageEventStream:
    def __init__(self) -> None:
        self._subscriptions: dict[MessageEventType, list[Subscription]] = {event_type: [] for event_type in MessageEventType}

    def subscribe(self, event_type: MessageEventType, handler: MessageHandler) -> Subscription:
        subscription = Subscription(self, event_type, handler)
        self._subscriptions[event_type].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        self._subscriptions[subscription.event_type].remove(subscription)

    def subscriber_count(self, event_type: MessageEventType) -> int:
        return len(self._subscriptions[event_type])

    def publish(self, event_type: MessageEventType, event: MessageEvent) -> None:
        for subscription in list(self._subscriptions[event_type]):
            try:
                subscription.handler(event)
            except Exception:
                logger.exception(f"Handler for {event_type} failed on message {event.id}")
