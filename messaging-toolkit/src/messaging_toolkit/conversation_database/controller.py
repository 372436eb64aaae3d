"""
Chat orchestrator (Facade).

'ChatOrchestrator' is the single entry point for conversation lifecycle logic.
It maps the application notion of "a conversation between two participants"
onto transport threads and identities, coordinating the user directory, the
thread registry, the identity issuer and the transport client. It never
touches storage internals: every read and write goes through the repository
interfaces it was constructed with.

Both thread-creation entry points ('start_user_conversation' and
'start_ai_conversation') funnel into 'ensure_thread', which looks the
participant pair up before doing any network work. The lookup is a map hit,
while creation costs an identity round-trip and a transport round-trip, so
reopening an existing conversation returns immediately. The lookup and the
creation run under one lock per canonical participant key, so two concurrent
first contacts for the same pair produce a single transport thread.

Failures propagate as 'messaging_toolkit.errors' types; nothing here retries.
The only swallowed failure is the typing notification sent just before an
assistant reply, which is auxiliary to the message itself.
"""

from collections.abc import Sequence

from loguru import logger

from messaging_toolkit.conversation_database.data_models.credential import Credential
from messaging_toolkit.conversation_database.data_models.thread import (
    Thread,
    ThreadDatabase,
    ThreadListItem,
    ThreadMode,
    participant_key,
)
from messaging_toolkit.conversation_database.data_models.user import (
    AssistantProfile,
    User,
    UserDatabase,
    UserRole,
)
from messaging_toolkit.errors import ForbiddenError, NotFoundError, TransportError, ValidationError
from messaging_toolkit.identity.issuer import IdentityIssuer
from messaging_toolkit.transport.base import TransportClient, TransportParticipant
from messaging_toolkit.utils.locks import KeyedLock
from messaging_toolkit.utils.time import get_current_datetime

DEFAULT_ASSISTANT_TAGLINE = "Always-on finance guide"
DEFAULT_ASSISTANT_PERSONA = "Financial wellness coach"
CONVERSATION_STARTED_PREVIEW = "Conversation started"
MESSAGE_PREVIEW_LENGTH = 120


class AssistantConversation:
    """The resolved pieces of a human-assistant conversation."""

    def __init__(self, human: User, assistant: User, thread: Thread) -> None:
        self.human = human
        self.assistant = assistant
        self.thread = thread


class ChatOrchestrator:
    def __init__(
        self,
        user_db: UserDatabase,
        thread_db: ThreadDatabase,
        identity_issuer: IdentityIssuer,
        transport: TransportClient,
        endpoint_url: str,
        assistant_tagline: str = DEFAULT_ASSISTANT_TAGLINE,
        assistant_persona: str = DEFAULT_ASSISTANT_PERSONA,
    ):
        self.user_db = user_db
        self.thread_db = thread_db
        self.identity_issuer = identity_issuer
        self.transport = transport
        self.endpoint_url = endpoint_url
        self.assistant_tagline = assistant_tagline
        self.assistant_persona = assistant_persona
        self._thread_creation = KeyedLock()

    async def _require_user(self, user_id: str, message: str | None = None) -> User:
        user = await self.user_db.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError(message or f"User {user_id} not found")
        return user

    async def require_human_user(self, user_id: str) -> User:
        user = await self._require_user(user_id)
        if user.role != UserRole.HUMAN:
            raise ValidationError("Assistant conversations are only available to human users")
        return user

    async def _get_assistant_user(self) -> User:
        assistants = await self.user_db.list_users_by_role(UserRole.ASSISTANT)
        if not assistants:
            raise NotFoundError("Assistant profile missing from the user directory")
        if len(assistants) > 1:
            logger.warning(f"Found {len(assistants)} assistant users, using {assistants[0].id!r}")
        return await self.identity_issuer.ensure_identity(assistants[0])

    async def get_assistant_profile(self) -> AssistantProfile:
        assistant = await self._get_assistant_user()
        return AssistantProfile(
            id=assistant.id,
            display_name=assistant.display_name,
            tagline=self.assistant_tagline,
            persona=self.assistant_persona,
            transport_identity=assistant.transport_identity,
        )

    async def list_human_users(self) -> list[User]:
        users = await self.user_db.list_users_by_role(UserRole.HUMAN)
        return sorted(users, key=lambda user: user.display_name.casefold())

    async def list_threads_for_user(self, user_id: str) -> list[ThreadListItem]:
        await self._require_user(user_id)
        threads = await self.thread_db.list_threads_for_user(user_id)
        return [
            ThreadListItem(**thread.model_dump(), unread_count=0)
            for thread in sorted(threads, key=lambda t: t.last_activity_at, reverse=True)
        ]

    async def ensure_thread(self, participant_ids: Sequence[str], mode: ThreadMode, topic: str) -> Thread:
        if len(participant_ids) != 2 or len(set(participant_ids)) != 2:
            raise ValidationError("A thread needs exactly two distinct participants")
        async with self._thread_creation.hold(participant_key(participant_ids)):
            existing = await self.thread_db.get_thread_by_participants(participant_ids)
            if existing:
                return existing

            primary = await self._require_user(participant_ids[0], "Initiator user not found")
            token = await self.identity_issuer.issue_token(primary)

            participants: list[TransportParticipant] = []
            for user_id in participant_ids:
                user = await self._require_user(user_id, f"Participant {user_id} missing")
                user = await self.identity_issuer.ensure_identity(user)
                participants.append(
                    TransportParticipant(identity=user.transport_identity or "", display_name=user.display_name)
                )

            transport_thread_id = await self.transport.create_thread(token, topic, participants)
            if not transport_thread_id:
                raise TransportError("Failed to create chat thread in the transport")

            now = get_current_datetime()
            thread = await self.thread_db.save_thread(
                Thread(
                    transport_thread_id=transport_thread_id,
                    mode=mode,
                    topic=topic,
                    participant_ids=list(participant_ids),
                    created_at=now,
                    last_activity_at=now,
                    last_message_preview=CONVERSATION_STARTED_PREVIEW,
                )
            )
            logger.info(f"Created {mode} thread {thread.id} ({topic!r}) for {participant_key(participant_ids)}")
            return thread

    async def start_user_conversation(self, initiator_id: str, peer_id: str) -> ThreadListItem:
        if initiator_id == peer_id:
            raise ValidationError("Cannot start a thread with yourself")
        initiator = await self.user_db.get_user_by_id(initiator_id)
        peer = await self.user_db.get_user_by_id(peer_id)
        if initiator is None or peer is None:
            raise NotFoundError("Both users must exist to create a conversation")
        if peer.role != UserRole.HUMAN:
            raise ValidationError("Peer must be a human user")
        if initiator.role != UserRole.HUMAN:
            raise ValidationError("Initiator must be a human user")

        topic = f"{initiator.first_name} ↔ {peer.first_name}"
        thread = await self.ensure_thread([initiator_id, peer_id], ThreadMode.USER, topic)
        return ThreadListItem(**thread.model_dump(), unread_count=0)

    async def start_ai_conversation(self, user_id: str) -> ThreadListItem:
        human = await self.require_human_user(user_id)
        assistant = await self.get_assistant_profile()
        topic = f"{assistant.display_name} with {human.first_name}"
        thread = await self.ensure_thread([user_id, assistant.id], ThreadMode.AI, topic)
        return ThreadListItem(**thread.model_dump(), unread_count=0)

    async def get_credentials_for_thread(self, user_id: str, thread_id: str) -> Credential:
        user = await self._require_user(user_id)
        thread = await self.thread_db.get_thread_by_id(thread_id)
        if thread is None:
            raise NotFoundError(f"Thread {thread_id} not found")
        if not thread.has_participant(user_id):
            raise ForbiddenError("User is not part of this thread")

        user = await self.identity_issuer.ensure_identity(user)
        token = await self.identity_issuer.issue_token(user)
        return Credential(
            transport_user_id=user.transport_identity or "",
            display_name=user.display_name,
            endpoint_url=self.endpoint_url,
            token=token,
            transport_thread_id=thread.transport_thread_id,
            topic=thread.topic,
        )

    async def _ensure_assistant_conversation(self, user_id: str, thread_id: str | None = None) -> AssistantConversation:
        human = await self.require_human_user(user_id)
        assistant = await self._get_assistant_user()

        thread: Thread | None = None
        if thread_id:
            pinned = await self.thread_db.get_thread_by_id(thread_id)
            if (
                pinned is not None
                and pinned.has_participant(user_id)
                and pinned.has_participant(assistant.id)
                and pinned.mode == ThreadMode.AI
            ):
                thread = pinned
            else:
                logger.debug(f"Ignoring thread {thread_id}: not an assistant conversation of {user_id}")

        if thread is None:
            topic = f"{assistant.display_name} with {human.first_name}"
            thread = await self.ensure_thread([user_id, assistant.id], ThreadMode.AI, topic)

        return AssistantConversation(human=human, assistant=assistant, thread=thread)

    async def deliver_assistant_response(self, user_id: str, message_text: str) -> None:
        text = message_text.strip()
        if not text:
            return

        conversation = await self._ensure_assistant_conversation(user_id)
        assistant, thread = conversation.assistant, conversation.thread
        token = await self.identity_issuer.issue_token(assistant)

        try:
            await self.transport.send_typing_notification(token, thread.transport_thread_id)
        except TransportError as exc:
            logger.warning(f"Typing notification before reply failed on thread {thread.id}: {exc}")

        await self.transport.send_message(token, thread.transport_thread_id, text, assistant.display_name)

        await self.thread_db.save_thread(
            thread.model_copy(
                update={
                    "last_activity_at": get_current_datetime(),
                    "last_message_preview": text[:MESSAGE_PREVIEW_LENGTH],
                }
            )
        )
        logger.info(f"Delivered assistant reply to {user_id} on thread {thread.id}")

    async def send_assistant_typing_indicator(self, user_id: str, thread_id: str | None = None) -> None:
        conversation = await self._ensure_assistant_conversation(user_id, thread_id)
        token = await self.identity_issuer.issue_token(conversation.assistant)
        await self.transport.send_typing_notification(token, conversation.thread.transport_thread_id)
