"""
Chat transport abstraction.

The transport is the managed chat service that actually stores and delivers
messages. This system only consumes it: create a thread for a set of
participants, send a message or a typing signal as a given user, and
acknowledge a received message. Every call is authenticated with the acting
user's access token, so the transport enforces its own permissions.

Implementations must raise 'TransportError' for any failure of the service.
Concrete implementations: 'AzureChatTransport'.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class TransportParticipant(BaseModel):
    identity: str
    display_name: str


class TransportClient(ABC):
    @abstractmethod
    async def create_thread(self, token: str, topic: str, participants: list[TransportParticipant]) -> str | None:
        """Create a transport thread and return its id, or None when the service returned no id."""
        pass

    @abstractmethod
    async def send_typing_notification(self, token: str, thread_id: str) -> None:
        pass

    @abstractmethod
    async def send_message(self, token: str, thread_id: str, content: str, sender_display_name: str) -> str:
        """Send 'content' to the thread and return the transport message id."""
        pass

    @abstractmethod
    async def send_read_receipt(self, token: str, thread_id: str, message_id: str) -> None:
        pass
