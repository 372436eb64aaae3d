"""
Shared fixtures for the chat broker tests.

The identity service and the chat transport are external collaborators, so
tests run against in-memory fakes that record every call. Both fakes yield to
the event loop inside each call, which lets concurrency tests interleave two
operations the same way real network round-trips would.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from mesh_dm.api import create_app
from mesh_dm.seed import build_seed_users
from messaging_toolkit.api.payloads import ResponderRequest
from messaging_toolkit.conversation_database.controller import ChatOrchestrator
from messaging_toolkit.conversation_database.in_memory.thread import InMemoryThreadDatabase
from messaging_toolkit.conversation_database.in_memory.user import InMemoryUserDatabase
from messaging_toolkit.errors import IdentityServiceError, TransportError
from messaging_toolkit.identity.base import AccessToken, IdentityService
from messaging_toolkit.identity.issuer import IdentityIssuer
from messaging_toolkit.responders.base import Responder
from messaging_toolkit.transport.base import TransportClient, TransportParticipant

ENDPOINT_URL = "https://mesh-test.communication.azure.com/"
LONG_AGO = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeIdentityService(IdentityService):
    def __init__(self) -> None:
        self.created: list[str] = []
        self.token_requests: list[tuple[str, list[str]]] = []
        self.fail_tokens = False
        self.fail_create = False

    async def create_identity(self) -> str:
        await asyncio.sleep(0)
        if self.fail_create:
            raise IdentityServiceError("identity service unavailable")
        identity = f"8:acs:test-{len(self.created) + 1}"
        self.created.append(identity)
        return identity

    async def get_token(self, identity: str, scopes: list[str]) -> AccessToken:
        await asyncio.sleep(0)
        if self.fail_tokens:
            raise IdentityServiceError("token issuance failed")
        self.token_requests.append((identity, scopes))
        return AccessToken(token=f"token-for-{identity}-{len(self.token_requests)}")


class FakeTransport(TransportClient):
    def __init__(self) -> None:
        self.threads: list[dict] = []
        self.typing: list[tuple[str, str]] = []
        self.messages: list[dict] = []
        self.read_receipts: list[tuple[str, str, str]] = []
        self.return_no_thread_id = False
        self.fail_typing = False
        self.fail_send = False
        self.fail_read_receipts = False

    async def create_thread(self, token: str, topic: str, participants: list[TransportParticipant]) -> str | None:
        await asyncio.sleep(0)
        if self.return_no_thread_id:
            return None
        thread_id = f"19:thread-{len(self.threads) + 1}@thread.v2"
        self.threads.append({"id": thread_id, "token": token, "topic": topic, "participants": participants})
        return thread_id

    async def send_typing_notification(self, token: str, thread_id: str) -> None:
        await asyncio.sleep(0)
        if self.fail_typing:
            raise TransportError("typing notification rejected")
        self.typing.append((token, thread_id))

    async def send_message(self, token: str, thread_id: str, content: str, sender_display_name: str) -> str:
        await asyncio.sleep(0)
        if self.fail_send:
            raise TransportError("message rejected")
        message_id = f"msg-{len(self.messages) + 1}"
        self.messages.append(
            {"id": message_id, "token": token, "thread_id": thread_id, "content": content, "sender": sender_display_name}
        )
        return message_id

    async def send_read_receipt(self, token: str, thread_id: str, message_id: str) -> None:
        await asyncio.sleep(0)
        if self.fail_read_receipts:
            raise TransportError("read receipt rejected")
        self.read_receipts.append((token, thread_id, message_id))


class EchoResponder(Responder):
    def __init__(self, reply: str | None = "Let's look at your budget together.") -> None:
        self.reply = reply
        self.requests: list[ResponderRequest] = []
        self.error: Exception | None = None

    async def respond(self, request: ResponderRequest) -> str | None:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def user_db() -> InMemoryUserDatabase:
    users = [user.model_copy(update={"last_seen_at": LONG_AGO}) for user in build_seed_users()]
    return InMemoryUserDatabase(users)


@pytest.fixture
def thread_db() -> InMemoryThreadDatabase:
    return InMemoryThreadDatabase()


@pytest.fixture
def identity_service() -> FakeIdentityService:
    return FakeIdentityService()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def issuer(user_db: InMemoryUserDatabase, identity_service: FakeIdentityService) -> IdentityIssuer:
    return IdentityIssuer(user_db, identity_service)


@pytest.fixture
def orchestrator(
    user_db: InMemoryUserDatabase,
    thread_db: InMemoryThreadDatabase,
    issuer: IdentityIssuer,
    transport: FakeTransport,
) -> ChatOrchestrator:
    return ChatOrchestrator(
        user_db=user_db,
        thread_db=thread_db,
        identity_issuer=issuer,
        transport=transport,
        endpoint_url=ENDPOINT_URL,
    )


@pytest.fixture
def responder() -> EchoResponder:
    return EchoResponder()


@pytest.fixture
def app(orchestrator: ChatOrchestrator, responder: EchoResponder):
    return create_app(orchestrator, responder)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
