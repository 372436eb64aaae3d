import json

import httpx
import pytest
from conftest import ENDPOINT_URL

from messaging_toolkit.api.payloads import ResponderRequest
from messaging_toolkit.client.api_client import ApiError, ChatApiClient
from messaging_toolkit.client.credential_cache import CredentialCache
from messaging_toolkit.client.session import ChatSession
from messaging_toolkit.conversation_database.data_models.credential import Credential
from messaging_toolkit.conversation_database.data_models.thread import ThreadMode
from messaging_toolkit.transport.events import MessageEvent, MessageEventStream, MessageEventType
from messaging_toolkit.utils.tasks import BackgroundTasks


def mock_api(handler) -> ChatApiClient:
    return ChatApiClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://broker"))


def asgi_api(app) -> ChatApiClient:
    return ChatApiClient(client=httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver"))


def make_credential(token: str = "token-1") -> Credential:
    return Credential(
        transport_user_id="8:acs:fredrick",
        display_name="Fredrick Maina",
        endpoint_url=ENDPOINT_URL,
        token=token,
        transport_thread_id="19:thread-1@thread.v2",
        topic="Fredrick ↔ Assumpta",
    )


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestChatApiClient:
    @pytest.mark.asyncio
    async def test_server_error_message_is_surfaced(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": "User is not part of this thread"})

        async with mock_api(handler) as api:
            with pytest.raises(ApiError) as exc_info:
                await api.get_chat_config("rohi", "thread-1")

        assert str(exc_info.value) == "User is not part of this thread"
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_default_message_without_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream exploded")

        async with mock_api(handler) as api:
            with pytest.raises(ApiError, match="Unable to load threads"):
                await api.get_user_threads("fredrick")

    @pytest.mark.asyncio
    async def test_network_failure_uses_default_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_api(handler) as api:
            with pytest.raises(ApiError, match="Failed to send AI response trigger") as exc_info:
                await api.trigger_ai_responder(ResponderRequest(sender_user_id="fredrick", message_text="hi"))

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_requests_use_camel_case_bodies(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        async with mock_api(handler) as api:
            await api.trigger_ai_responder(ResponderRequest(sender_user_id="fredrick", message_text="hi"))

        assert seen[0].url.path == "/api/ai/messages"
        assert json.loads(seen[0].content) == {"senderUserId": "fredrick", "messageText": "hi"}


class TestCredentialCache:
    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = CredentialCache(ttl_seconds=60, clock=clock)
        cache.remember("thread-1", make_credential())

        clock.now += 59
        assert cache.get("thread-1") == make_credential()

        clock.now += 1
        assert cache.get("thread-1") is None
        assert len(cache) == 0

    def test_clear_drops_everything(self):
        cache = CredentialCache()
        cache.remember("thread-1", make_credential())
        cache.remember("thread-2", make_credential("token-2"))

        cache.clear()

        assert cache.get("thread-1") is None
        assert len(cache) == 0


class TestChatSession:
    @pytest.mark.asyncio
    async def test_select_thread_reuses_fresh_credential(self, app, identity_service):
        async with asgi_api(app) as api:
            session = ChatSession(api, transport=None)
            await session.sign_in("fredrick")
            thread = await session.start_conversation("assumpta")
            issued = len(identity_service.token_requests)

            first = await session.select_thread(thread.id)
            second = await session.select_thread(thread.id)

        assert first == second
        assert len(identity_service.token_requests) == issued
        assert [item.id for item in session.threads] == [thread.id]

    @pytest.mark.asyncio
    async def test_expired_credential_is_refetched(self, app, identity_service):
        clock = FakeClock()
        async with asgi_api(app) as api:
            session = ChatSession(api, transport=None, cache=CredentialCache(ttl_seconds=900, clock=clock))
            await session.sign_in("fredrick")
            thread = await session.start_conversation("rohi")
            cached = await session.select_thread(thread.id)

            clock.now += 900
            refreshed = await session.select_thread(thread.id)

        assert refreshed.token != cached.token

    @pytest.mark.asyncio
    async def test_sign_out_clears_state(self, app):
        async with asgi_api(app) as api:
            session = ChatSession(api, transport=None)
            await session.sign_in("fredrick")
            await session.start_conversation()

            session.sign_out()

        assert session.user_id is None
        assert session.threads == []
        assert len(session.cache) == 0
        with pytest.raises(RuntimeError):
            await session.refresh_threads()

    @pytest.mark.asyncio
    async def test_assistant_conversation_round_trip(self, app, transport, responder):
        tasks = BackgroundTasks()
        stream = MessageEventStream()
        async with asgi_api(app) as api:
            session = ChatSession(api, transport=transport, tasks=tasks)
            await session.sign_in("fredrick", phone_number="254743039297")
            thread = await session.start_conversation()
            assert thread.mode == ThreadMode.AI

            credential = await session.select_thread(thread.id)
            session.open_bridges(stream, thread, credential)

            outbound = MessageEvent(
                thread_id=credential.transport_thread_id,
                id="client-1",
                sender_id=credential.transport_user_id,
                content="How much should I save each month?",
            )
            stream.publish(MessageEventType.MESSAGE_SENT, outbound)
            stream.publish(MessageEventType.MESSAGE_SENT, outbound)
            await tasks.drain()

            assert [request.message_text for request in responder.requests] == ["How much should I save each month?"]
            assert responder.requests[0].phone_number == "254743039297"
            assert [message["content"] for message in transport.messages] == [responder.reply]
            assert transport.messages[0]["thread_id"] == credential.transport_thread_id
            assert len(transport.typing) >= 1

            inbound = MessageEvent(
                thread_id=credential.transport_thread_id,
                id=transport.messages[0]["id"],
                sender_id="8:acs:assistant",
                content=responder.reply,
            )
            stream.publish(MessageEventType.MESSAGE_RECEIVED, inbound)
            await tasks.drain()

            assert transport.read_receipts == [
                (credential.token, credential.transport_thread_id, transport.messages[0]["id"])
            ]

            threads = await session.refresh_threads()
            assert threads[0].last_message_preview == responder.reply

            session.close_bridges()
            assert stream.subscriber_count(MessageEventType.MESSAGE_SENT) == 0
            assert stream.subscriber_count(MessageEventType.MESSAGE_RECEIVED) == 0

    @pytest.mark.asyncio
    async def test_user_thread_does_not_trigger_responder(self, app, transport, responder):
        tasks = BackgroundTasks()
        stream = MessageEventStream()
        async with asgi_api(app) as api:
            session = ChatSession(api, transport=transport, tasks=tasks)
            await session.sign_in("fredrick")
            thread = await session.start_conversation("assumpta")
            credential = await session.select_thread(thread.id)
            session.open_bridges(stream, thread, credential)

            stream.publish(
                MessageEventType.MESSAGE_SENT,
                MessageEvent(
                    thread_id=credential.transport_thread_id,
                    id="client-1",
                    sender_id=credential.transport_user_id,
                    content="Lunch tomorrow?",
                ),
            )
            await tasks.drain()

        assert responder.requests == []
        assert transport.messages == []

    @pytest.mark.asyncio
    async def test_api_errors_reach_the_session(self, app):
        async with asgi_api(app) as api:
            session = ChatSession(api, transport=None)
            await session.sign_in("fredrick")
            with pytest.raises(ApiError, match="yourself") as exc_info:
                await session.start_conversation("fredrick")

        assert exc_info.value.status_code == 400
        assert session.threads == []
