import asyncio

import pytest

from messaging_toolkit.utils.locks import KeyedLock
from messaging_toolkit.utils.tasks import BackgroundTasks


@pytest.mark.asyncio
async def test_keyed_lock_serializes_same_key_only():
    locks = KeyedLock()
    order: list[str] = []

    async def work(key: str, label: str) -> None:
        async with locks.hold(key):
            order.append(f"{label}-start")
            await asyncio.sleep(0)
            order.append(f"{label}-end")

    await asyncio.gather(work("a", "first"), work("a", "second"))
    assert order == ["first-start", "first-end", "second-start", "second-end"]

    order.clear()
    await asyncio.gather(work("a", "first"), work("b", "other"))
    assert order[:2] == ["first-start", "other-start"]


@pytest.mark.asyncio
async def test_keyed_lock_forgets_released_keys():
    locks = KeyedLock()
    async with locks.hold("fredrick|assumpta"):
        assert len(locks) == 1
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_background_tasks_contain_failures():
    tasks = BackgroundTasks()
    done: list[str] = []

    async def fail() -> None:
        raise RuntimeError("boom")

    async def succeed() -> None:
        await asyncio.sleep(0)
        done.append("ok")

    tasks.spawn(fail(), "failing task")
    tasks.spawn(succeed(), "succeeding task")
    assert tasks.pending == 2

    await tasks.drain()

    assert done == ["ok"]
    assert tasks.pending == 0
