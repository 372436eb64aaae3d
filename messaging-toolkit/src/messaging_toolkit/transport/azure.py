"""
Azure Communication Services chat backend.

Each call opens a short-lived async 'ChatClient' bound to the acting user's
token; tokens are minted per request and are never cached on the server.
"""

from azure.communication.chat import ChatParticipant, CommunicationUserIdentifier
from azure.communication.chat.aio import ChatClient, CommunicationTokenCredential
from azure.core.exceptions import AzureError
from loguru import logger

from messaging_toolkit.errors import TransportError
from messaging_toolkit.transport.base import TransportClient, TransportParticipant


class AzureChatTransport(TransportClient):
    def __init__(self, endpoint_url: str) -> None:
        if not endpoint_url:
            raise ValueError("An Azure Communication Services endpoint URL is required")
        self.endpoint_url = endpoint_url

    def _client(self, token: str) -> ChatClient:
        return ChatClient(self.endpoint_url, CommunicationTokenCredential(token))

    async def create_thread(self, token: str, topic: str, participants: list[TransportParticipant]) -> str | None:
        thread_participants = [
            ChatParticipant(
                identifier=CommunicationUserIdentifier(participant.identity),
                display_name=participant.display_name,
            )
            for participant in participants
        ]
        try:
            async with self._client(token) as client:
                result = await client.create_chat_thread(topic, thread_participants=thread_participants)
        except AzureError as exc:
            logger.error(f"Chat thread creation failed for topic {topic!r}: {exc}")
            raise TransportError("Failed to create chat thread") from exc
        if result.errors:
            logger.warning(f"Chat thread {topic!r} created with participant errors: {result.errors}")
        return result.chat_thread.id if result.chat_thread else None

    async def send_typing_notification(self, token: str, thread_id: str) -> None:
        try:
            async with self._client(token) as client:
                async with client.get_chat_thread_client(thread_id) as thread_client:
                    await thread_client.send_typing_notification()
        except AzureError as exc:
            raise TransportError("Failed to send typing notification") from exc

    async def send_message(self, token: str, thread_id: str, content: str, sender_display_name: str) -> str:
        try:
            async with self._client(token) as client:
                async with client.get_chat_thread_client(thread_id) as thread_client:
                    result = await thread_client.send_message(content, sender_display_name=sender_display_name)
        except AzureError as exc:
            logger.error(f"Message send failed on thread {thread_id}: {exc}")
            raise TransportError("Failed to send message") from exc
        return result.id

    async def send_read_receipt(self, token: str, thread_id: str, message_id: str) -> None:
        try:
            async with self._client(token) as client:
                async with client.get_chat_thread_client(thread_id) as thread_client:
                    await thread_client.send_read_receipt(message_id)
        except AzureError as exc:
            raise TransportError("Failed to send read receipt") from exc
