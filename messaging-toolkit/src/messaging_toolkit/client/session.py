"""
Client-side chat session.

'ChatSession' holds what one signed-in user needs while browsing
conversations: the API client, the credential cache and the bridges of the
conversation currently open. Selecting a thread reuses a cached credential
when it is still fresh and fetches one otherwise; signing out drops every
cached credential and closes the open bridges.
"""

from functools import partial

from loguru import logger

from messaging_toolkit.api.payloads import CreateAiThreadRequest, CreateUserThreadRequest
from messaging_toolkit.bridges.read_receipts import ReadReceiptBridge
from messaging_toolkit.bridges.responder import ResponderBridge
from messaging_toolkit.client.api_client import ChatApiClient
from messaging_toolkit.client.credential_cache import CredentialCache
from messaging_toolkit.conversation_database.data_models.credential import Credential
from messaging_toolkit.conversation_database.data_models.thread import ThreadListItem
from messaging_toolkit.transport.base import TransportClient
from messaging_toolkit.transport.events import MessageEventStream
from messaging_toolkit.utils.tasks import BackgroundTasks


class ChatSession:
    def __init__(
        self,
        api: ChatApiClient,
        transport: TransportClient,
        cache: CredentialCache | None = None,
        tasks: BackgroundTasks | None = None,
    ) -> None:
        self.api = api
        self.transport = transport
        self.cache = cache or CredentialCache()
        self.tasks = tasks or BackgroundTasks()
        self.user_id: str | None = None
        self.phone_number: str | None = None
        self.threads: list[ThreadListItem] = []
        self._bridges: list[ResponderBridge | ReadReceiptBridge] = []

    def _require_user(self) -> str:
        if self.user_id is None:
            raise RuntimeError("No user is signed in")
        return self.user_id

    async def sign_in(self, user_id: str, phone_number: str | None = None) -> list[ThreadListItem]:
        self.user_id = user_id
        self.phone_number = phone_number
        return await self.refresh_threads()

    async def refresh_threads(self) -> list[ThreadListItem]:
        response = await self.api.get_user_threads(self._require_user())
        self.threads = response.threads
        return self.threads

    def _upsert_thread(self, thread: ThreadListItem) -> None:
        self.threads = [thread] + [item for item in self.threads if item.id != thread.id]

    async def start_conversation(self, peer_id: str | None = None) -> ThreadListItem:
        """Open (or create) the conversation with 'peer_id', or with the assistant when no peer is given."""
        user_id = self._require_user()
        request = (
            CreateUserThreadRequest(initiator_id=user_id, peer_id=peer_id, mode="user")
            if peer_id
            else CreateAiThreadRequest(initiator_id=user_id, mode="ai")
        )
        response = await self.api.create_thread(request)
        self._upsert_thread(response.thread)
        if response.config is not None:
            self.cache.remember(response.thread.id, response.config)
        return response.thread

    async def select_thread(self, thread_id: str) -> Credential:
        cached = self.cache.get(thread_id)
        if cached is not None:
            return cached
        response = await self.api.get_chat_config(self._require_user(), thread_id)
        self.cache.remember(thread_id, response.config)
        return response.config

    def open_bridges(self, stream: MessageEventStream, thread: ThreadListItem, credential: Credential) -> None:
        """Attach the responder and read-receipt bridges for the conversation now on screen."""
        self.close_bridges()
        user_id = self._require_user()
        responder = ResponderBridge(
            stream,
            thread_id=thread.id,
            thread_mode=thread.mode,
            current_user_transport_id=credential.transport_user_id,
            current_user_id=user_id,
            current_user_phone_number=self.phone_number,
            trigger_responder=self.api.trigger_ai_responder,
            trigger_typing=self.api.trigger_assistant_typing_indicator,
            tasks=self.tasks,
        ).attach()
        receipts = ReadReceiptBridge(
            stream,
            current_user_transport_id=credential.transport_user_id,
            acknowledge=partial(self.transport.send_read_receipt, credential.token, credential.transport_thread_id),
            tasks=self.tasks,
        ).attach()
        self._bridges = [responder, receipts]

    def close_bridges(self) -> None:
        for bridge in self._bridges:
            bridge.close()
        self._bridges = []

    def sign_out(self) -> None:
        logger.info(f"Signing out {self.user_id}")
        self.close_bridges()
        self.cache.clear()
        self.user_id = None
        self.phone_number = None
        self.threads = []
