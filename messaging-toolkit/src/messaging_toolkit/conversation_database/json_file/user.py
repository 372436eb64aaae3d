"""
JSON-file backed user directory.

Keeps the in-memory map as the working copy and rewrites the whole file after
every save; the write runs in a worker thread so saves do not block the
event loop. Suitable for a single-process deployment with a handful of known
users; the file is the only state that survives a restart.
"""

import asyncio
from pathlib import Path

from loguru import logger
from pydantic import TypeAdapter

from messaging_toolkit.conversation_database.data_models.user import User
from messaging_toolkit.conversation_database.in_memory.user import InMemoryUserDatabase

_USERS_ADAPTER = TypeAdapter(list[User])


class JSONFileUserDatabase(InMemoryUserDatabase):
    def __init__(self, path: Path, seed_users: list[User] | None = None) -> None:
        self.path = path
        self._write_lock = asyncio.Lock()
        if path.exists():
            users = _USERS_ADAPTER.validate_json(path.read_bytes())
            logger.info(f"Loaded {len(users)} users from {path}")
            super().__init__(users)
            # seed users missing from the file are added; stored records win
            for user in seed_users or []:
                self.users.setdefault(user.id, user)
        else:
            super().__init__(seed_users or [])
        self._flush()

    async def save_user(self, user: User) -> User:
        saved = await super().save_user(user)
        async with self._write_lock:
            await asyncio.to_thread(self._write, self._snapshot())
        return saved

    def _snapshot(self) -> bytes:
        return _USERS_ADAPTER.dump_json(list(self.users.values()), indent=2)

    def _flush(self) -> None:
        self._write(self._snapshot())

    def _write(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(payload)
