import asyncio
from pathlib import Path

from loguru import logger
from pydantic import TypeAdapter

from messaging_toolkit.conversation_database.data_models.thread import Thread
from messaging_toolkit.conversation_database.in_memory.thread import InMemoryThreadDatabase

_THREADS_ADAPTER = TypeAdapter(list[Thread])


class JSONFileThreadDatabase(InMemoryThreadDatabase):
    """
    Thread registry persisted to a JSON file; the participant index is rebuilt on load.

    The whole file is rewritten after every save in a worker thread; writes are
    serialized so the newest snapshot always lands last. Meant for a single
    process with a small registry.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self._write_lock = asyncio.Lock()
        if path.exists():
            for thread in _THREADS_ADAPTER.validate_json(path.read_bytes()):
                self.threads[thread.id] = thread
                self.participant_index[thread.participant_key] = thread.id
            logger.info(f"Loaded {len(self.threads)} threads from {path}")

    async def save_thread(self, thread: Thread) -> Thread:
        saved = await super().save_thread(thread)
        async with self._write_lock:
            await asyncio.to_thread(self._write, _THREADS_ADAPTER.dump_json(list(self.threads.values()), indent=2))
        return saved

    def _write(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(payload)
