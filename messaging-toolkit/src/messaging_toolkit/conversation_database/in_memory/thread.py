from collections.abc import Iterable

from messaging_toolkit.conversation_database.data_models.thread import Thread, ThreadDatabase, participant_key
from messaging_toolkit.utils.database import generate_uid


class InMemoryThreadDatabase(ThreadDatabase):
    def __init__(self) -> None:
        self.threads: dict[str, Thread] = {}
        self.participant_index: dict[str, str] = {}

    async def get_thread_by_participants(self, participant_ids: Iterable[str]) -> Thread | None:
        thread_id = self.participant_index.get(participant_key(participant_ids))
        if thread_id is None:
            return None
        return self.threads.get(thread_id)

    async def save_thread(self, thread: Thread) -> Thread:
        if not thread.id:
            thread = thread.model_copy(update={"id": generate_uid()})
        self.threads[thread.id] = thread
        self.participant_index[thread.participant_key] = thread.id
        return thread

    async def list_threads_for_user(self, user_id: str) -> list[Thread]:
        return [thread for thread in self.threads.values() if thread.has_participant(user_id)]

    async def get_thread_by_id(self, thread_id: str) -> Thread | None:
        return self.threads.get(thread_id)

    async def list_threads(self) -> list[Thread]:
        return list(self.threads.values())
