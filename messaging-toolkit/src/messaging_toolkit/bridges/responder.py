"""
Responder bridge.

While a human has an assistant-mode conversation open, every message they send
must reach the external responder exactly once, and the assistant should look
busy while the reply is produced. The bridge listens for 'message_sent' events
and, for each new outbound message with non-empty text, dispatches two
independent background triggers: a typing-indicator request and a responder
request. Neither is awaited; a failure in one is logged and does not affect the
other or the sender.

Transports may redeliver the same sent-event, so forwarded message ids are
tracked in a bounded set. Closing the bridge clears that set; message ids are
not reused across transport sessions.
"""

from collections.abc import Awaitable, Callable

from loguru import logger

from messaging_toolkit.api.payloads import ResponderRequest, TypingIndicatorRequest
from messaging_toolkit.bridges.base import Bridge, BoundedIdSet
from messaging_toolkit.conversation_database.data_models.thread import ThreadMode
from messaging_toolkit.transport.events import MessageEvent, MessageEventStream, MessageEventType
from messaging_toolkit.utils.tasks import BackgroundTasks

ResponderTrigger = Callable[[ResponderRequest], Awaitable[None]]
TypingTrigger = Callable[[TypingIndicatorRequest], Awaitable[None]]


class ResponderBridge(Bridge):
    event_type = MessageEventType.MESSAGE_SENT

    def __init__(
        self,
        stream: MessageEventStream,
        *,
        thread_id: str | None,
        thread_mode: ThreadMode | None,
        current_user_transport_id: str | None,
        current_user_id: str | None,
        trigger_responder: ResponderTrigger,
        trigger_typing: TypingTrigger,
        current_user_phone_number: str | None = None,
        tasks: BackgroundTasks | None = None,
        max_tracked: int = 1024,
    ) -> None:
        super().__init__(stream, tasks)
        self.thread_id = thread_id
        self.thread_mode = thread_mode
        self.current_user_transport_id = current_user_transport_id
        self.current_user_id = current_user_id
        self.current_user_phone_number = current_user_phone_number
        self.trigger_responder = trigger_responder
        self.trigger_typing = trigger_typing
        self.forwarded = BoundedIdSet(max_tracked)

    def is_active(self) -> bool:
        return bool(
            self.thread_mode == ThreadMode.AI
            and self.thread_id
            and self.current_user_transport_id
            and self.current_user_id
        )

    def handle(self, event: MessageEvent) -> None:
        if not event.id:
            return
        if event.sender_id and event.sender_id != self.current_user_transport_id:
            return
        if event.id in self.forwarded:
            return
        text = event.content.strip()
        if not text:
            return
        self.forwarded.add(event.id)

        logger.debug(f"Forwarding message {event.id} on thread {self.thread_id} to the responder")
        self.tasks.spawn(
            self.trigger_typing(TypingIndicatorRequest(receiver_user_id=self.current_user_id, thread_id=self.thread_id)),
            f"typing trigger for message {event.id}",
        )
        self.tasks.spawn(
            self.trigger_responder(
                ResponderRequest(
                    sender_user_id=self.current_user_id,
                    message_text=text,
                    phone_number=self.current_user_phone_number,
                )
            ),
            f"responder trigger for message {event.id}",
        )

    def close(self) -> None:
        super().close()
        self.forwarded.clear()
