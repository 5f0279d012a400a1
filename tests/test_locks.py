"""Tests for InMemoryLockManager."""

from __future__ import annotations

import asyncio

from handoffkit.core.locks import InMemoryLockManager, lock_key
from handoffkit.models.enums import SenderRole


class TestLockKey:
    def test_role_prefix(self) -> None:
        assert lock_key(SenderRole.USER, "29:a") == "user:29:a"
        assert lock_key(SenderRole.AGENT, "29:a") == "agent:29:a"


class TestInMemoryLockManager:
    async def test_serialization(self) -> None:
        mgr = InMemoryLockManager()
        events: list[str] = []

        async def task(n: int) -> None:
            async with mgr.locked("user:1"):
                events.append(f"enter {n}")
                await asyncio.sleep(0.01)
                events.append(f"exit {n}")

        await asyncio.gather(task(1), task(2))
        assert events == ["enter 1", "exit 1", "enter 2", "exit 2"]

    async def test_different_keys_run_concurrently(self) -> None:
        mgr = InMemoryLockManager()
        events: list[str] = []

        async def task(key: str) -> None:
            async with mgr.locked(key):
                events.append(f"enter {key}")
                await asyncio.sleep(0.01)
                events.append(f"exit {key}")

        await asyncio.gather(task("user:1"), task("agent:1"))
        assert events[:2] == ["enter user:1", "enter agent:1"]

    async def test_idle_keys_are_dropped(self) -> None:
        mgr = InMemoryLockManager()
        async with mgr.locked("user:1"):
            assert mgr.size == 1
        assert mgr.size == 0

    async def test_key_kept_while_awaited(self) -> None:
        mgr = InMemoryLockManager()
        release = asyncio.Event()
        sizes: list[int] = []

        async def holder() -> None:
            async with mgr.locked("user:1"):
                await release.wait()

        async def waiter() -> None:
            async with mgr.locked("user:1"):
                sizes.append(mgr.size)

        tasks = [asyncio.create_task(holder()), asyncio.create_task(waiter())]
        await asyncio.sleep(0)
        assert mgr.size == 1
        release.set()
        await asyncio.gather(*tasks)

        assert sizes == [1]
        assert mgr.size == 0

    async def test_lock_released_on_error(self) -> None:
        mgr = InMemoryLockManager()
        try:
            async with mgr.locked("user:1"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        async with asyncio.timeout(1):
            async with mgr.locked("user:1"):
                pass
        assert mgr.size == 0
