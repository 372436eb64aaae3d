"""
Per-key asyncio locks.

'KeyedLock' hands out one 'asyncio.Lock' per key so that work for the same key
(a user id, a canonical participant key) runs one caller at a time while
unrelated keys proceed concurrently. Locks live in a 'WeakValueDictionary':
an entry disappears as soon as no coroutine holds or waits on it, so the map
does not grow with the number of keys ever seen.
"""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _get_lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._get_lock(key)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
