"""
HTTP surface of the chat broker.

'create_app' binds a 'ChatOrchestrator' and a 'Responder' to a FastAPI
application. Routes only translate payloads; every rule lives in the
orchestrator. Errors from the orchestration core are mapped to status codes
by exception handlers and always leave the service as '{"error": "..."}'.
"""

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from loguru import logger

from messaging_toolkit.api.payloads import (
    AssistantProfileResponse,
    AssistantResponseRequest,
    CreateAiThreadRequest,
    CreateThreadResponse,
    CreateUserThreadRequest,
    CredentialRequest,
    CredentialResponse,
    ErrorResponse,
    OkResponse,
    ResponderRequest,
    ThreadsResponse,
    TypingIndicatorRequest,
    UsersResponse,
)
from messaging_toolkit.conversation_database.controller import ChatOrchestrator
from messaging_toolkit.conversation_database.data_models.user import PublicUser
from messaging_toolkit.errors import (
    ForbiddenError,
    IdentityServiceError,
    MessagingError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from messaging_toolkit.responders.base import NullResponder, Responder

ERROR_STATUS_CODES: dict[type[MessagingError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    ValidationError: 400,
    IdentityServiceError: 502,
    TransportError: 502,
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def status_code_for(exc: MessagingError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return 500


def create_app(orchestrator: ChatOrchestrator, responder: Responder | None = None) -> FastAPI:
    app = FastAPI(title="Mesh Direct Messages", version="0.1.0")
    app.state.orchestrator = orchestrator
    app.state.responder = responder or NullResponder()
    app.state.started_at = time.monotonic()

    @app.exception_handler(MessagingError)
    async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc}")
        return _error(status_code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}" for error in exc.errors()
        )
        return _error(400, details or "Invalid request")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return _error(500, str(exc) or "Internal server error")

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptimeSeconds": round(time.monotonic() - app.state.started_at),
        }

    @app.post("/api/health")
    async def health_echo(request: Request) -> dict[str, Any]:
        try:
            body = await request.json()
        except ValueError:
            body = None
        return {"status": "ok", "received": body}

    @app.get("/api/users", response_model=UsersResponse)
    async def list_users() -> UsersResponse:
        users = await app.state.orchestrator.list_human_users()
        return UsersResponse(users=[PublicUser.from_user(user) for user in users])

    @app.get("/api/assistant", response_model=AssistantProfileResponse)
    async def assistant_profile() -> AssistantProfileResponse:
        return AssistantProfileResponse(assistant=await app.state.orchestrator.get_assistant_profile())

    @app.get("/api/users/{user_id}/threads", response_model=ThreadsResponse)
    async def list_threads(user_id: str) -> ThreadsResponse:
        return ThreadsResponse(threads=await app.state.orchestrator.list_threads_for_user(user_id))

    @app.post("/api/chat/config", response_model=CredentialResponse)
    async def chat_config(request: CredentialRequest) -> CredentialResponse:
        credential = await app.state.orchestrator.get_credentials_for_thread(request.user_id, request.thread_id)
        return CredentialResponse(config=credential)

    @app.post("/api/threads", response_model=CreateThreadResponse, response_model_exclude_none=True)
    async def create_thread(request: CreateAiThreadRequest | CreateUserThreadRequest) -> CreateThreadResponse:
        orchestrator: ChatOrchestrator = app.state.orchestrator
        if isinstance(request, CreateUserThreadRequest):
            thread = await orchestrator.start_user_conversation(request.initiator_id, request.peer_id)
        else:
            thread = await orchestrator.start_ai_conversation(request.initiator_id)
        config = await orchestrator.get_credentials_for_thread(request.initiator_id, thread.id)
        return CreateThreadResponse(thread=thread, config=config)

    @app.post("/api/ai/messages")
    async def trigger_assistant_reply(request: ResponderRequest) -> Response:
        if not request.message_text.strip():
            return Response(status_code=200)
        await app.state.orchestrator.require_human_user(request.sender_user_id)
        try:
            reply = await app.state.responder.respond(request)
            if reply:
                await app.state.orchestrator.deliver_assistant_response(request.sender_user_id, reply)
        except Exception as exc:
            logger.exception(f"Assistant reply for {request.sender_user_id} failed")
            return _error(500, str(exc) or "Failed to deliver assistant response")
        return Response(status_code=200)

    @app.post("/api/ai/responses")
    async def deliver_assistant_reply(request: AssistantResponseRequest) -> Response:
        await app.state.orchestrator.deliver_assistant_response(request.user_id, request.message_text)
        return Response(status_code=200)

    @app.post("/api/ai/typing", response_model=OkResponse)
    async def typing_indicator(request: TypingIndicatorRequest | None = None) -> Any:
        if request is None or not request.receiver_user_id:
            return _error(400, "receiverUserId is required")
        await app.state.orchestrator.require_human_user(request.receiver_user_id)
        try:
            await app.state.orchestrator.send_assistant_typing_indicator(request.receiver_user_id, request.thread_id)
        except Exception as exc:
            logger.exception(f"Typing indicator for {request.receiver_user_id} failed")
            return _error(500, str(exc) or "Failed to send typing indicator")
        return OkResponse()

    return app
