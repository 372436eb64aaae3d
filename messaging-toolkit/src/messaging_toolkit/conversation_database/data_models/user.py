"""
User data model and storage interface (the user directory).

A 'User' is either one of the known humans or the single assistant profile.
'transport_identity' is the opaque identifier minted by the transport's
identity service; it is assigned lazily the first time the user needs a token
and never changes afterwards, because threads created with it would otherwise
be orphaned.

The 'UserDatabase' ABC is the pluggable storage backend. Concrete
implementations: 'InMemoryUserDatabase', 'JSONFileUserDatabase'.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import StrEnum

from pydantic import Field

from messaging_toolkit.utils.models import CamelModel
from messaging_toolkit.utils.time import get_current_datetime


class UserRole(StrEnum):
    HUMAN = "human"
    ASSISTANT = "assistant"


class PresenceStatus(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"
    AWAY = "away"


class User(CamelModel):
    """A known participant, human or assistant."""

    id: str
    display_name: str
    role: UserRole = UserRole.HUMAN
    accent_color: str = "#A5B4FC"
    external_id: str | None = None
    transport_identity: str | None = None
    presence: PresenceStatus = PresenceStatus.OFFLINE
    created_at: datetime = Field(default_factory=get_current_datetime)
    last_seen_at: datetime = Field(default_factory=get_current_datetime)

    @property
    def first_name(self) -> str:
        parts = self.display_name.split()
        return parts[0] if parts else self.display_name


class PublicUser(CamelModel):
    """Projection of 'User' that is safe to list to any client (no transport identity)."""

    id: str
    display_name: str
    role: UserRole
    accent_color: str
    external_id: str | None = None
    presence: PresenceStatus
    created_at: datetime
    last_seen_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls.model_validate(user.model_dump(exclude={"transport_identity"}))


class UserDatabase(ABC):
    """Abstract repository for 'User' records. 'save_user' is an upsert by id."""

    @abstractmethod
    async def list_users(self) -> list[User]:
        pass

    @abstractmethod
    async def list_users_by_role(self, role: UserRole) -> list[User]:
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> User | None:
        pass

    @abstractmethod
    async def save_user(self, user: User) -> User:
        pass


class AssistantProfile(CamelModel):
    """Public description of the single assistant user."""

    id: str
    display_name: str
    tagline: str
    persona: str
    transport_identity: str | None = None
