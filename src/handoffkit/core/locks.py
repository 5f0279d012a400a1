"""Per-conversation async locking."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from handoffkit.models.enums import SenderRole


def lock_key(role: SenderRole, identity_id: str) -> str:
    """Key serializing the messages of one user or one agent."""
    return f"{role}:{identity_id}"


class IdentityLockManager(ABC):
    """Serializes message handling per key.

    The router holds ``lock_key(USER, id)`` while processing a user's
    message and ``lock_key(AGENT, id)`` while processing an agent's, so two
    messages from the same sender never interleave their state
    transitions.  Implement this to share locks across processes (Redis,
    Postgres advisory locks, etc.).
    """

    @abstractmethod
    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        """Hold the exclusive lock for *key* for the duration of the block."""
        yield  # pragma: no cover


@dataclass
class _Slot:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class InMemoryLockManager(IdentityLockManager):
    """asyncio locks for a single process.

    A key's lock exists only while some task holds or waits for it, so
    memory tracks the number of conversations currently being handled.
    Not reentrant.
    """

    def __init__(self) -> None:
        self._slots: dict[str, _Slot] = {}

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        slot = self._slots.setdefault(key, _Slot())
        slot.users += 1
        try:
            async with slot.lock:
                yield
        finally:
            slot.users -= 1
            if slot.users == 0:
                del self._slots[key]

    @property
    def size(self) -> int:
        """Number of keys currently held or awaited."""
        return len(self._slots)
