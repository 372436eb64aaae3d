"""
Request and response bodies of the HTTP surface.

Shared by the FastAPI application ('mesh_dm.api') and the async client
('messaging_toolkit.client.api_client') so both sides agree on the camelCase
wire format. Every error response has the single shape 'ErrorResponse'.
"""

from typing import Literal

from pydantic import Field

from messaging_toolkit.conversation_database.data_models.credential import Credential
from messaging_toolkit.conversation_database.data_models.thread import ThreadListItem
from messaging_toolkit.conversation_database.data_models.user import AssistantProfile, PublicUser
from messaging_toolkit.utils.models import CamelModel


class ErrorResponse(CamelModel):
    error: str


class CredentialRequest(CamelModel):
    user_id: str = Field(min_length=1)
    thread_id: str = Field(min_length=1)


class CreateAiThreadRequest(CamelModel):
    initiator_id: str = Field(min_length=1)
    mode: Literal["ai"]


class CreateUserThreadRequest(CamelModel):
    initiator_id: str = Field(min_length=1)
    peer_id: str = Field(min_length=1)
    mode: Literal["user"]


class ResponderRequest(CamelModel):
    sender_user_id: str = Field(min_length=1)
    message_text: str
    phone_number: str | None = None


class AssistantResponseRequest(CamelModel):
    user_id: str = Field(min_length=1)
    message_text: str


class TypingIndicatorRequest(CamelModel):
    receiver_user_id: str | None = None
    thread_id: str | None = None


class ThreadsResponse(CamelModel):
    threads: list[ThreadListItem]


class CredentialResponse(CamelModel):
    config: Credential


class CreateThreadResponse(CamelModel):
    thread: ThreadListItem
    config: Credential | None = None


class UsersResponse(CamelModel):
    users: list[PublicUser]


class AssistantProfileResponse(CamelModel):
    assistant: AssistantProfile


class OkResponse(CamelModel):
    ok: bool = True
