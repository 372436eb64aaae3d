"""
Async client for the chat broker HTTP surface.

Mirrors the routes of 'mesh_dm.api'. Every non-2xx answer becomes an
'ApiError' carrying the server's '{"error": ...}' message when one is present,
otherwise the per-call default message. Read paths ('get_user_threads',
'get_chat_config') are meant to be cancelled by cancelling the awaiting task;
'asyncio.CancelledError' is never converted into an 'ApiError'.
"""

from typing import Any

import httpx

from messaging_toolkit.api.payloads import (
    CreateAiThreadRequest,
    CreateThreadResponse,
    CreateUserThreadRequest,
    CredentialRequest,
    CredentialResponse,
    ResponderRequest,
    ThreadsResponse,
    TypingIndicatorRequest,
)


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _extract_error_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return None


class ChatApiClient:
    def __init__(self, base_url: str = "", client: httpx.AsyncClient | None = None, timeout: float = 15.0) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _request(self, method: str, url: str, error_message: str, json: Any = None) -> httpx.Response:
        try:
            response = await self.client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            raise ApiError(error_message) from exc
        if response.is_error:
            raise ApiError(_extract_error_message(response) or error_message, response.status_code)
        return response

    async def get_user_threads(self, user_id: str) -> ThreadsResponse:
        response = await self._request("GET", f"/api/users/{user_id}/threads", "Unable to load threads")
        return ThreadsResponse.model_validate(response.json())

    async def get_chat_config(self, user_id: str, thread_id: str) -> CredentialResponse:
        body = CredentialRequest(user_id=user_id, thread_id=thread_id).model_dump(by_alias=True)
        response = await self._request("POST", "/api/chat/config", "Unable to initialize chat adapter", json=body)
        return CredentialResponse.model_validate(response.json())

    async def create_thread(self, params: CreateAiThreadRequest | CreateUserThreadRequest) -> CreateThreadResponse:
        response = await self._request(
            "POST", "/api/threads", "Unable to start conversation", json=params.model_dump(by_alias=True)
        )
        return CreateThreadResponse.model_validate(response.json())

    async def trigger_ai_responder(self, payload: ResponderRequest) -> None:
        await self._request(
            "POST",
            "/api/ai/messages",
            "Failed to send AI response trigger",
            json=payload.model_dump(by_alias=True, exclude_none=True),
        )

    async def trigger_assistant_typing_indicator(self, payload: TypingIndicatorRequest) -> None:
        await self._request(
            "POST",
            "/api/ai/typing",
            "Failed to notify assistant typing indicator",
            json=payload.model_dump(by_alias=True, exclude_none=True),
        )
