"""In-memory implementation of HandoffStore."""

from __future__ import annotations

import itertools
import logging

from handoffkit.models.enums import HandoffState
from handoffkit.models.identity import ConversationIdentity
from handoffkit.models.record import HandoffRecord
from handoffkit.store.base import HandoffStore

logger = logging.getLogger("handoffkit.store")


class InMemoryHandoffStore(HandoffStore):
    """Dict-based in-memory store for single-process deployments and tests.

    **Concurrency note:** no operation awaits between reading and writing
    its record, so each one is atomic within a single event loop.  Do not
    share an instance across threads or event loops.
    """

    def __init__(self) -> None:
        self._records: dict[str, HandoffRecord] = {}
        # Tie-breaker for equal queued_at timestamps: enqueue order.
        self._queue_seq: dict[str, int] = {}
        self._seq = itertools.count()

    def _put(self, record: HandoffRecord) -> HandoffRecord:
        self._records[record.user_id] = record
        if record.state == HandoffState.QUEUED:
            self._queue_seq.setdefault(record.user_id, next(self._seq))
        else:
            self._queue_seq.pop(record.user_id, None)
        return record.model_copy(deep=True)

    def _get_or_create(self, identity: ConversationIdentity) -> HandoffRecord:
        record = self._records.get(identity.id)
        if record is None:
            record = HandoffRecord(identity=identity)
            self._records[identity.id] = record
            logger.info("Created handoff record", extra={"user_id": identity.id})
        return record

    def _paired_with(self, agent: ConversationIdentity) -> HandoffRecord | None:
        for record in self._records.values():
            if agent.same_as(record.agent_identity):
                return record
        return None

    def _queued(self) -> list[HandoffRecord]:
        queued = [r for r in self._records.values() if r.state == HandoffState.QUEUED]
        return sorted(queued, key=lambda r: (r.queued_at, self._queue_seq.get(r.user_id, 0)))

    # Record operations

    async def find_or_create(self, identity: ConversationIdentity) -> HandoffRecord:
        return self._get_or_create(identity).model_copy(deep=True)

    async def get(self, user_id: str) -> HandoffRecord | None:
        record = self._records.get(user_id)
        return record.model_copy(deep=True) if record is not None else None

    async def save(self, record: HandoffRecord) -> None:
        validated = HandoffRecord.model_validate(record.model_dump())
        if validated.agent_identity is not None:
            holder = self._paired_with(validated.agent_identity)
            if holder is not None and holder.user_id != validated.user_id:
                from handoffkit.core.router import AgentAlreadyPairedError

                raise AgentAlreadyPairedError(
                    f"Agent {validated.agent_identity.id} is already paired "
                    f"with user {holder.user_id}"
                )
        self._put(validated)

    async def append_message(self, record: HandoffRecord, sender: str, text: str) -> HandoffRecord:
        # Apply to the stored version so a stale copy cannot undo a transition.
        current = self._records.get(record.user_id, record)
        return self._put(current.with_message(sender, text))

    async def list_records(self) -> list[HandoffRecord]:
        return [r.model_copy(deep=True) for r in self._records.values()]

    # Pairing operations

    async def find_by_agent(self, agent: ConversationIdentity) -> HandoffRecord | None:
        record = self._paired_with(agent)
        return record.model_copy(deep=True) if record is not None else None

    async def pair_with_agent(self, agent: ConversationIdentity) -> HandoffRecord | None:
        existing = self._paired_with(agent)
        if existing is not None:
            from handoffkit.core.router import AgentAlreadyPairedError

            raise AgentAlreadyPairedError(
                f"Agent {agent.id} is already paired with user {existing.user_id}"
            )
        queue = self._queued()
        if not queue:
            return None
        return self._put(queue[0].to_agent(agent))

    async def unpair_agent(self, agent: ConversationIdentity) -> HandoffRecord:
        record = self._paired_with(agent)
        if record is None:
            from handoffkit.core.router import RecordNotFoundError

            raise RecordNotFoundError(f"No user paired with agent {agent.id}")
        return self._put(record.to_bot())

    # Queue operations

    async def enqueue(self, identity: ConversationIdentity) -> HandoffRecord:
        record = self._get_or_create(identity)
        if record.state != HandoffState.BOT:
            return record.model_copy(deep=True)
        return self._put(record.to_queued())

    async def dequeue(self, identity: ConversationIdentity) -> HandoffRecord:
        record = self._get_or_create(identity)
        if record.state != HandoffState.QUEUED:
            return record.model_copy(deep=True)
        return self._put(record.to_bot())

    async def list_queue(self) -> list[HandoffRecord]:
        return [r.model_copy(deep=True) for r in self._queued()]
