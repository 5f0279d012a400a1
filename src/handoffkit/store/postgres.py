"""PostgreSQL implementation of HandoffStore using asyncpg."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from handoffkit.models.enums import HandoffState
from handoffkit.models.identity import ConversationIdentity
from handoffkit.models.record import HandoffRecord
from handoffkit.store.base import HandoffStore

logger = logging.getLogger("handoffkit.store")

_SCHEMA = """\
CREATE SEQUENCE IF NOT EXISTS handoff_queue_seq;

CREATE TABLE IF NOT EXISTS handoff_records (
    user_id TEXT PRIMARY KEY,
    state TEXT NOT NULL DEFAULT 'bot',
    agent_id TEXT,
    queued_at TIMESTAMPTZ,
    queue_seq BIGINT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    data JSONB NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_handoff_records_agent
    ON handoff_records(agent_id) WHERE agent_id IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_handoff_records_queue
    ON handoff_records(queued_at, queue_seq) WHERE state = 'queued';
"""

_UPSERT = """\
INSERT INTO handoff_records (user_id, state, agent_id, queued_at, queue_seq, data)
VALUES ($1, $2, $3, $4, CASE WHEN $2 = 'queued' THEN nextval('handoff_queue_seq') END, $5)
ON CONFLICT (user_id) DO UPDATE SET
    state = EXCLUDED.state,
    agent_id = EXCLUDED.agent_id,
    queued_at = EXCLUDED.queued_at,
    queue_seq = CASE
        WHEN EXCLUDED.state = 'queued'
        THEN COALESCE(handoff_records.queue_seq, EXCLUDED.queue_seq)
    END,
    data = EXCLUDED.data
"""

_QUEUE_ORDER = "ORDER BY queued_at, queue_seq"


def _dump(model: Any) -> str:
    return str(model.model_dump_json())


def _load(row: Any) -> HandoffRecord:
    return HandoffRecord.model_validate_json(row["data"])


class PostgresHandoffStore(HandoffStore):
    """PostgreSQL-backed handoff store using asyncpg.

    Each record lives in one row: the full record as JSONB plus the
    columns the queue and pairing lookups need.  Transitions run in a
    transaction holding the row lock, and a partial unique index on
    ``agent_id`` guarantees an agent is paired with at most one user.
    Connection-level failures surface as ``StoreUnavailableError``.
    """

    def __init__(
        self,
        dsn: str | None = None,
        pool: Any = None,
    ) -> None:
        try:
            import asyncpg as _asyncpg
        except ImportError as exc:
            raise ImportError(
                "asyncpg is required for PostgresHandoffStore. "
                "Install it with: pip install handoffkit[postgres]"
            ) from exc
        self._asyncpg = _asyncpg
        self._dsn = dsn
        self._pool = pool
        self._owns_pool = pool is None
        self._unavailable: tuple[type[BaseException], ...] = (
            OSError,
            TimeoutError,
            _asyncpg.exceptions.InterfaceError,
            _asyncpg.exceptions.PostgresConnectionError,
        )

    async def init(self, min_size: int = 2, max_size: int = 10) -> None:
        """Create the connection pool (if needed) and ensure schema exists."""
        if self._pool is None:
            try:
                self._pool = await self._asyncpg.create_pool(
                    self._dsn,
                    min_size=min_size,
                    max_size=max_size,
                )
            except self._unavailable as exc:
                from handoffkit.core.router import StoreUnavailableError

                raise StoreUnavailableError(f"Cannot connect to PostgreSQL: {exc}") from exc
        async with self._connection() as conn:
            await conn.execute(_SCHEMA)

    async def close(self) -> None:
        """Release the connection pool if we own it."""
        if self._pool is not None and self._owns_pool:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> PostgresHandoffStore:
        await self.init()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        try:
            async with self._pool.acquire() as conn:
                yield conn
        except self._unavailable as exc:
            from handoffkit.core.router import StoreUnavailableError

            logger.error("PostgreSQL unavailable: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[Any]:
        async with self._connection() as conn, conn.transaction():
            yield conn

    async def _write(self, conn: Any, record: HandoffRecord) -> HandoffRecord:
        agent_id = record.agent_identity.id if record.agent_identity is not None else None
        try:
            await conn.execute(
                _UPSERT,
                record.user_id,
                record.state.value,
                agent_id,
                record.queued_at,
                _dump(record),
            )
        except self._asyncpg.exceptions.UniqueViolationError as exc:
            from handoffkit.core.router import AgentAlreadyPairedError

            raise AgentAlreadyPairedError(f"Agent {agent_id} is already paired") from exc
        return record

    async def _ensure(self, conn: Any, identity: ConversationIdentity) -> HandoffRecord:
        """Create the row if missing and return it locked for update."""
        await conn.execute(
            "INSERT INTO handoff_records (user_id, state, data) VALUES ($1, $2, $3) "
            "ON CONFLICT (user_id) DO NOTHING",
            identity.id,
            HandoffState.BOT.value,
            _dump(HandoffRecord(identity=identity)),
        )
        row = await conn.fetchrow(
            "SELECT data FROM handoff_records WHERE user_id = $1 FOR UPDATE", identity.id
        )
        return _load(row)

    # ── Record operations ────────────────────────────────────────

    async def find_or_create(self, identity: ConversationIdentity) -> HandoffRecord:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                "INSERT INTO handoff_records (user_id, state, data) VALUES ($1, $2, $3) "
                "ON CONFLICT (user_id) DO NOTHING RETURNING data",
                identity.id,
                HandoffState.BOT.value,
                _dump(HandoffRecord(identity=identity)),
            )
            if row is not None:
                logger.info("Created handoff record", extra={"user_id": identity.id})
            else:
                row = await conn.fetchrow(
                    "SELECT data FROM handoff_records WHERE user_id = $1", identity.id
                )
        return _load(row)

    async def get(self, user_id: str) -> HandoffRecord | None:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM handoff_records WHERE user_id = $1", user_id
            )
        if row is None:
            return None
        return _load(row)

    async def save(self, record: HandoffRecord) -> None:
        validated = HandoffRecord.model_validate(record.model_dump())
        async with self._connection() as conn:
            await self._write(conn, validated)

    async def append_message(self, record: HandoffRecord, sender: str, text: str) -> HandoffRecord:
        async with self._transaction() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM handoff_records WHERE user_id = $1 FOR UPDATE",
                record.user_id,
            )
            current = _load(row) if row is not None else record
            return await self._write(conn, current.with_message(sender, text))

    async def list_records(self) -> list[HandoffRecord]:
        async with self._connection() as conn:
            rows = await conn.fetch(
                "SELECT data FROM handoff_records ORDER BY created_at, user_id"
            )
        return [_load(r) for r in rows]

    # ── Pairing operations ───────────────────────────────────────

    async def find_by_agent(self, agent: ConversationIdentity) -> HandoffRecord | None:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM handoff_records WHERE agent_id = $1", agent.id
            )
        if row is None:
            return None
        return _load(row)

    async def pair_with_agent(self, agent: ConversationIdentity) -> HandoffRecord | None:
        async with self._transaction() as conn:
            paired = await conn.fetchval(
                "SELECT user_id FROM handoff_records WHERE agent_id = $1", agent.id
            )
            if paired is not None:
                from handoffkit.core.router import AgentAlreadyPairedError

                raise AgentAlreadyPairedError(
                    f"Agent {agent.id} is already paired with user {paired}"
                )
            # Wait on a locked head of the queue. A row that stopped matching
            # while we waited yields no row, so look again while users remain.
            while True:
                row = await conn.fetchrow(
                    "SELECT data FROM handoff_records WHERE state = $1 "
                    f"{_QUEUE_ORDER} LIMIT 1 FOR UPDATE",
                    HandoffState.QUEUED.value,
                )
                if row is not None:
                    break
                waiting = await conn.fetchval(
                    "SELECT EXISTS (SELECT 1 FROM handoff_records WHERE state = $1)",
                    HandoffState.QUEUED.value,
                )
                if not waiting:
                    return None
            return await self._write(conn, _load(row).to_agent(agent))

    async def unpair_agent(self, agent: ConversationIdentity) -> HandoffRecord:
        async with self._transaction() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM handoff_records WHERE agent_id = $1 FOR UPDATE", agent.id
            )
            if row is None:
                from handoffkit.core.router import RecordNotFoundError

                raise RecordNotFoundError(f"No user paired with agent {agent.id}")
            return await self._write(conn, _load(row).to_bot())

    # ── Queue operations ─────────────────────────────────────────

    async def enqueue(self, identity: ConversationIdentity) -> HandoffRecord:
        async with self._transaction() as conn:
            record = await self._ensure(conn, identity)
            if record.state != HandoffState.BOT:
                return record
            return await self._write(conn, record.to_queued())

    async def dequeue(self, identity: ConversationIdentity) -> HandoffRecord:
        async with self._transaction() as conn:
            record = await self._ensure(conn, identity)
            if record.state != HandoffState.QUEUED:
                return record
            return await self._write(conn, record.to_bot())

    async def list_queue(self) -> list[HandoffRecord]:
        async with self._connection() as conn:
            rows = await conn.fetch(
                f"SELECT data FROM handoff_records WHERE state = $1 {_QUEUE_ORDER}",
                HandoffState.QUEUED.value,
            )
        return [_load(r) for r in rows]
