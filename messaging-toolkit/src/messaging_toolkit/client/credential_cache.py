import time
from collections.abc import Callable

from messaging_toolkit.conversation_database.data_models.credential import Credential

DEFAULT_CREDENTIAL_TTL_SECONDS = 15 * 60


class CredentialCache:
    """
    Time-to-live cache of thread credentials, keyed by local thread id.

    Entries older than 'ttl_seconds' are treated as missing and dropped on
    access. 'clear' invalidates everything at once (sign-out).
    """

    def __init__(
        self, ttl_seconds: float = DEFAULT_CREDENTIAL_TTL_SECONDS, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, tuple[Credential, float]] = {}

    def get(self, thread_id: str) -> Credential | None:
        entry = self._entries.get(thread_id)
        if entry is None:
            return None
        credential, fetched_at = entry
        if self.clock() - fetched_at >= self.ttl_seconds:
            del self._entries[thread_id]
            return None
        return credential

    def remember(self, thread_id: str, credential: Credential) -> None:
        self._entries[thread_id] = (credential, self.clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
