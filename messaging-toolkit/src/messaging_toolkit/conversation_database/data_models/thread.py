"""
Thread data model and storage interface (the thread registry).

A 'Thread' is the local record of one transport-level conversation between
exactly two participants. The registry guarantees at most one thread per
unordered participant pair by indexing every saved thread under its canonical
participant key (the sorted ids joined with '|'). The index is only as strong
as its callers: they must look a pair up before creating a new record, which
the orchestrator does under a per-key lock.

Concrete implementations: 'InMemoryThreadDatabase', 'JSONFileThreadDatabase'.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum

from pydantic import Field, field_validator

from messaging_toolkit.utils.models import CamelModel
from messaging_toolkit.utils.time import get_current_datetime

PARTICIPANT_KEY_SEPARATOR = "|"


class ThreadMode(StrEnum):
    USER = "user"
    AI = "ai"


def participant_key(participant_ids: Iterable[str]) -> str:
    return PARTICIPANT_KEY_SEPARATOR.join(sorted(participant_ids))


class Thread(CamelModel):
    """
    A conversation between two users, backed by one transport thread.

    'participant_ids' keeps the creation order (the primary participant, whose
    token created the transport thread, comes first) but is compared as a set.
    An empty 'id' means the record has not been saved yet.
    """

    id: str = ""
    transport_thread_id: str
    mode: ThreadMode
    topic: str
    participant_ids: list[str]
    created_at: datetime = Field(default_factory=get_current_datetime)
    last_activity_at: datetime = Field(default_factory=get_current_datetime)
    last_message_preview: str | None = None

    @field_validator("participant_ids")
    @classmethod
    def _exactly_two_distinct(cls, value: list[str]) -> list[str]:
        if len(value) != 2 or len(set(value)) != 2:
            raise ValueError("a thread has exactly two distinct participants")
        return value

    @property
    def participant_key(self) -> str:
        return participant_key(self.participant_ids)

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participant_ids


class ThreadListItem(Thread):
    unread_count: int = 0


class ThreadDatabase(ABC):
    """Abstract repository for 'Thread' records."""

    @abstractmethod
    async def get_thread_by_participants(self, participant_ids: Iterable[str]) -> Thread | None:
        pass

    @abstractmethod
    async def save_thread(self, thread: Thread) -> Thread:
        """Store 'thread', assigning an id when it has none, and point its participant key at it."""
        pass

    @abstractmethod
    async def list_threads_for_user(self, user_id: str) -> list[Thread]:
        pass

    @abstractmethod
    async def get_thread_by_id(self, thread_id: str) -> Thread | None:
        pass

    @abstractmethod
    async def list_threads(self) -> list[Thread]:
        pass
