"""Abstract base class for handoff storage."""

from __future__ import annotations

from abc import ABC, abstractmethod

from handoffkit.models.identity import ConversationIdentity
from handoffkit.models.record import HandoffRecord


class HandoffStore(ABC):
    """Persistent storage for handoff records and the agent queue.

    Implement this ABC to plug in any storage backend (SQL, document
    store, etc.).  The library ships with ``InMemoryHandoffStore`` for
    single-process deployments and tests, and ``PostgresHandoffStore``.

    Every operation must be atomic with respect to the record it touches:
    readers never observe a half-applied transition.  Records are keyed
    by ``ConversationIdentity.id``.
    """

    # Record operations

    @abstractmethod
    async def find_or_create(self, identity: ConversationIdentity) -> HandoffRecord:
        """Return the record for *identity*, creating it in ``bot`` state if absent.

        Concurrent calls for the same identity must yield a single record.
        """
        ...

    @abstractmethod
    async def get(self, user_id: str) -> HandoffRecord | None:
        """Get a record by user id, or ``None`` if it doesn't exist."""
        ...

    @abstractmethod
    async def save(self, record: HandoffRecord) -> None:
        """Persist the full record, replacing any previous version.

        Implementations must validate the record before writing and store
        nothing if it is invalid.

        Raises:
            AgentAlreadyPairedError: If the record's agent is already paired
                with a different user.
        """
        ...

    @abstractmethod
    async def append_message(self, record: HandoffRecord, sender: str, text: str) -> HandoffRecord:
        """Prepend a message to the record's log and persist it."""
        ...

    @abstractmethod
    async def list_records(self) -> list[HandoffRecord]:
        """List every stored record in creation order."""
        ...

    # Pairing operations

    @abstractmethod
    async def find_by_agent(self, agent: ConversationIdentity) -> HandoffRecord | None:
        """Return the record currently paired with *agent*, if any."""
        ...

    @abstractmethod
    async def pair_with_agent(self, agent: ConversationIdentity) -> HandoffRecord | None:
        """Pair *agent* with the longest waiting user.

        Returns ``None`` when the queue is empty.

        Raises:
            AgentAlreadyPairedError: If *agent* is already paired.
        """
        ...

    @abstractmethod
    async def unpair_agent(self, agent: ConversationIdentity) -> HandoffRecord:
        """Return the user paired with *agent* to the bot.

        Raises:
            RecordNotFoundError: If *agent* is not paired with anyone.
        """
        ...

    # Queue operations

    @abstractmethod
    async def enqueue(self, identity: ConversationIdentity) -> HandoffRecord:
        """Put the user in the queue, creating the record first if needed.

        A user already queued keeps their place; a user already paired with
        an agent is returned unchanged.
        """
        ...

    @abstractmethod
    async def dequeue(self, identity: ConversationIdentity) -> HandoffRecord:
        """Take the user out of the queue and back to the bot.

        A user already paired with an agent is returned unchanged.
        """
        ...

    @abstractmethod
    async def list_queue(self) -> list[HandoffRecord]:
        """Queued records, longest waiting first."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override in backends that hold connections."""
