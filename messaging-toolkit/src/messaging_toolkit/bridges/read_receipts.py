"""
Read-receipt bridge: acknowledges every inbound message not sent by the current user.

Acknowledgement is best-effort; failures are logged by the background task
dispatcher and never reach the conversation view.
"""

from collections.abc import Awaitable, Callable

from messaging_toolkit.bridges.base import Bridge
from messaging_toolkit.transport.events import MessageEvent, MessageEventStream, MessageEventType
from messaging_toolkit.utils.tasks import BackgroundTasks

Acknowledge = Callable[[str], Awaitable[None]]


class ReadReceiptBridge(Bridge):
    event_type = MessageEventType.MESSAGE_RECEIVED

    def __init__(
        self,
        stream: MessageEventStream,
        *,
        current_user_transport_id: str | None,
        acknowledge: Acknowledge,
        tasks: BackgroundTasks | None = None,
    ) -> None:
        super().__init__(stream, tasks)
        self.current_user_transport_id = current_user_transport_id
        self.acknowledge = acknowledge

    def is_active(self) -> bool:
        return bool(self.current_user_transport_id)

    def handle(self, event: MessageEvent) -> None:
        if not event.id:
            return
        if event.sender_id == self.current_user_transport_id:
            return
        self.tasks.spawn(self.acknowledge(event.id), f"read receipt for message {event.id}")
