"""HandoffRouter - decides who handles each inbound chat message."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from handoffkit.core.config import HandoffConfig
from handoffkit.core.locks import IdentityLockManager, InMemoryLockManager, lock_key
from handoffkit.core.policy import AgentPolicy, name_prefix_policy
from handoffkit.models.delivery import InboundActivity, RouteResult
from handoffkit.models.enums import (
    AgentCommand,
    HandoffState,
    RouteAction,
    SenderRole,
    UserCommand,
)
from handoffkit.models.identity import ConversationIdentity
from handoffkit.models.record import HandoffRecord
from handoffkit.store.base import HandoffStore
from handoffkit.store.memory import InMemoryHandoffStore
from handoffkit.telemetry.base import Attr, SpanKind, TelemetryProvider
from handoffkit.telemetry.noop import NoopTelemetryProvider
from handoffkit.transport.base import ConversationTransport, NextFn, ReplyFn

__all__ = [
    "AgentAlreadyPairedError",
    "HandoffError",
    "HandoffRouter",
    "RecordNotFoundError",
    "StoreUnavailableError",
]

logger = logging.getLogger("handoffkit.router")

_COMMAND_PREFIX = "#"


class HandoffError(Exception):
    """Base exception for all handoff errors."""


class RecordNotFoundError(HandoffError):
    """No record matches the lookup (e.g. the agent is not paired)."""


class AgentAlreadyPairedError(HandoffError):
    """The agent is already paired with a user."""


class StoreUnavailableError(HandoffError):
    """The backing store could not be reached."""


class HandoffRouter:
    """Routes each inbound message to the bot, a waiting queue, or a human agent.

    Every user is in one of three states: talking to the bot, queued for an
    agent, or bridged to an agent.  Users move between them with the
    ``agent`` and ``cancel`` commands; agents use ``#list``, ``#connect``
    and ``#disconnect``.  While a pairing is live, messages on either side
    are forwarded verbatim to the other side through the transport.

    Messages from the same user, and from the same agent, are processed
    one at a time.

    Example::

        router = HandoffRouter(transport, store=InMemoryHandoffStore())
        result = await router.handle(activity, reply, call_next)
    """

    def __init__(
        self,
        transport: ConversationTransport,
        *,
        store: HandoffStore | None = None,
        config: HandoffConfig | None = None,
        agent_policy: AgentPolicy | None = None,
        lock_manager: IdentityLockManager | None = None,
        telemetry: TelemetryProvider | None = None,
    ) -> None:
        self._transport = transport
        self._store = store or InMemoryHandoffStore()
        self._config = config or HandoffConfig()
        self._is_agent = agent_policy or name_prefix_policy(self._config.agent_name_prefix)
        self._locks = lock_manager or InMemoryLockManager()
        self._telemetry = telemetry or NoopTelemetryProvider()

    @property
    def store(self) -> HandoffStore:
        """The handoff record store."""
        return self._store

    @property
    def transport(self) -> ConversationTransport:
        """The transport used to reach counterpart conversations."""
        return self._transport

    @property
    def config(self) -> HandoffConfig:
        return self._config

    async def handle(
        self,
        activity: InboundActivity,
        reply: ReplyFn,
        call_next: NextFn,
    ) -> RouteResult:
        """Route one inbound activity.

        Args:
            activity: The activity received by the transport.
            reply: Sends a text back to the sender of *activity*.
            call_next: Continues the downstream bot pipeline; awaited
                whenever the router does not intercept the message.

        Returns:
            What the router did with the message.
        """
        if not activity.is_text_message:
            await call_next()
            return RouteResult(action=RouteAction.PASS_THROUGH)

        sender = activity.sender
        role = SenderRole.AGENT if self._is_agent(sender) else SenderRole.USER
        span_id = self._telemetry.start_span(
            SpanKind.HANDOFF_INBOUND,
            "handoff.inbound",
            attributes={Attr.SENDER_ID: sender.id, Attr.SENDER_ROLE: role.value},
        )
        try:
            async with self._locks.locked(lock_key(role, sender.id)):
                if role == SenderRole.AGENT:
                    result = await self._route_agent(activity, reply, call_next)
                else:
                    result = await self._route_user(activity, reply, call_next)
        except StoreUnavailableError as exc:
            logger.exception(
                "Handoff store unavailable, dropping message from %s",
                sender.id,
                extra={"sender_id": sender.id, "role": role.value},
            )
            result = await self._fail(reply, role=role, error=str(exc))
        except Exception as exc:
            self._telemetry.end_span(span_id, status="error", error_message=str(exc))
            raise

        self._telemetry.end_span(
            span_id,
            status="error" if result.action == RouteAction.FAILED else "ok",
            error_message=result.error,
            attributes={
                Attr.ROUTE_ACTION: result.action.value,
                Attr.HANDOFF_STATE: result.state.value if result.state else "",
            },
        )
        return result

    # -- User side --

    async def _route_user(
        self, activity: InboundActivity, reply: ReplyFn, call_next: NextFn
    ) -> RouteResult:
        user = activity.sender
        text = activity.text or ""

        record = await self._store.find_or_create(user)
        record = await self._store.append_message(record, user.display_name, text)

        if record.state == HandoffState.WITH_AGENT:
            return await self._forward_to_agent(record, text, reply)

        command = text.strip().lower()
        if command == UserCommand.AGENT:
            record = await self._store.enqueue(user)
            if record.state == HandoffState.WITH_AGENT:
                return await self._forward_to_agent(record, text, reply)
            logger.info("User %s queued for an agent", user.id, extra={"user_id": user.id})
            return await self._respond(
                reply, self._config.replies.waiting_for_agent, role=SenderRole.USER, record=record
            )

        if command == UserCommand.CANCEL:
            record = await self._store.dequeue(user)
            if record.state == HandoffState.WITH_AGENT:
                return await self._forward_to_agent(record, text, reply)
            logger.info("User %s returned to the bot", user.id, extra={"user_id": user.id})
            return await self._respond(
                reply, self._config.replies.connected_to_bot, role=SenderRole.USER, record=record
            )

        logger.debug(
            "Passing message from user %s to the bot",
            user.id,
            extra={"user_id": user.id, "state": record.state.value},
        )
        await call_next()
        return RouteResult(
            action=RouteAction.PASS_THROUGH, role=SenderRole.USER, state=record.state
        )

    async def _forward_to_agent(
        self, record: HandoffRecord, text: str, reply: ReplyFn
    ) -> RouteResult:
        assert record.agent_identity is not None
        return await self._forward(
            record.agent_identity, text, reply, role=SenderRole.USER, state=record.state
        )

    # -- Agent side --

    async def _route_agent(
        self, activity: InboundActivity, reply: ReplyFn, call_next: NextFn
    ) -> RouteResult:
        agent = activity.sender
        text = activity.text or ""
        command = text.strip().lower()
        is_command = command.startswith(_COMMAND_PREFIX)

        paired = await self._store.find_by_agent(agent)
        if paired is not None:
            if command == f"{_COMMAND_PREFIX}{AgentCommand.DISCONNECT}":
                return await self._disconnect(agent, reply)
            if is_command:
                return await self._respond(
                    reply,
                    self._config.replies.command_not_valid,
                    role=SenderRole.AGENT,
                    record=paired,
                )
            paired = await self._store.append_message(paired, agent.display_name, text)
            return await self._forward(
                paired.identity, text, reply, role=SenderRole.AGENT, state=paired.state
            )

        if not is_command:
            # An unpaired agent talks to the bot like anyone else.
            await call_next()
            return RouteResult(action=RouteAction.PASS_THROUGH, role=SenderRole.AGENT)

        name = command.removeprefix(_COMMAND_PREFIX).strip()
        if name == AgentCommand.LIST:
            return await self._list_queue(reply)
        if name == AgentCommand.CONNECT:
            return await self._connect(agent, reply)

        logger.debug(
            "Ignoring agent command %r from %s", command, agent.id, extra={"agent_id": agent.id}
        )
        unknown = self._config.replies.unknown_command
        if unknown is None:
            return RouteResult(action=RouteAction.NO_OP, role=SenderRole.AGENT)
        return await self._respond(reply, unknown, role=SenderRole.AGENT)

    async def _list_queue(self, reply: ReplyFn) -> RouteResult:
        queue = await self._store.list_queue()
        if queue:
            text = "\n\n".join(f"- {r.identity.display_name}" for r in queue)
        else:
            text = self._config.replies.queue_empty
        return await self._respond(reply, text, role=SenderRole.AGENT)

    async def _connect(self, agent: ConversationIdentity, reply: ReplyFn) -> RouteResult:
        replies = self._config.replies
        try:
            record = await self._store.pair_with_agent(agent)
        except AgentAlreadyPairedError:
            logger.warning(
                "Agent %s tried to connect while already paired",
                agent.id,
                extra={"agent_id": agent.id},
            )
            return await self._respond(reply, replies.command_not_valid, role=SenderRole.AGENT)

        if record is None:
            return await self._respond(reply, replies.nobody_in_queue, role=SenderRole.AGENT)

        logger.info(
            "Agent %s connected to user %s",
            agent.id,
            record.user_id,
            extra={"agent_id": agent.id, "user_id": record.user_id},
        )
        self._telemetry.record_metric(
            "handoffkit.pairings",
            1,
            attributes={Attr.AGENT_ID: agent.id, Attr.USER_ID: record.user_id},
        )
        return await self._respond(
            reply,
            replies.connected_to_user.format(name=record.identity.display_name),
            role=SenderRole.AGENT,
            record=record,
        )

    async def _disconnect(self, agent: ConversationIdentity, reply: ReplyFn) -> RouteResult:
        try:
            record = await self._store.unpair_agent(agent)
        except RecordNotFoundError:
            logger.debug("Agent %s is no longer paired", agent.id, extra={"agent_id": agent.id})
            return RouteResult(action=RouteAction.NO_OP, role=SenderRole.AGENT)

        logger.info(
            "Agent %s disconnected from user %s",
            agent.id,
            record.user_id,
            extra={"agent_id": agent.id, "user_id": record.user_id},
        )
        return await self._respond(
            reply, self._config.replies.reconnected_to_bot, role=SenderRole.AGENT, record=record
        )

    # -- Delivery helpers --

    async def _forward(
        self,
        target: ConversationIdentity,
        text: str,
        reply: ReplyFn,
        *,
        role: SenderRole,
        state: HandoffState,
    ) -> RouteResult:
        timeout = self._config.forward_timeout_seconds
        span_id = self._telemetry.start_span(
            SpanKind.HANDOFF_FORWARD,
            "handoff.forward",
            attributes={Attr.FORWARD_TARGET: target.id, Attr.TRANSPORT: self._transport.name},
        )
        t0 = time.monotonic()
        try:
            result = await asyncio.wait_for(self._transport.send(target, text), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Forwarding to %s timed out after %.1fs",
                target.id,
                timeout,
                extra={"target_id": target.id, "timeout": timeout},
            )
            self._telemetry.end_span(span_id, status="error", error_message="timeout")
            return await self._fail(reply, role=role, state=state, error="forward_timeout")
        except Exception as exc:
            self._telemetry.end_span(span_id, status="error", error_message=str(exc))
            raise

        self._telemetry.record_metric(
            "handoffkit.forward_ms",
            (time.monotonic() - t0) * 1000,
            unit="ms",
            attributes={Attr.TRANSPORT: self._transport.name},
        )
        if not result.success:
            logger.warning(
                "Forwarding to %s failed: %s",
                target.id,
                result.error,
                extra={"target_id": target.id},
            )
            self._telemetry.end_span(
                span_id,
                status="error",
                error_message=result.error,
                attributes={Attr.FORWARD_SUCCESS: False},
            )
            return await self._fail(
                reply, role=role, state=state, error=result.error or "forward_failed"
            )

        self._telemetry.end_span(span_id, attributes={Attr.FORWARD_SUCCESS: True})
        return RouteResult(
            action=RouteAction.FORWARDED, role=role, forwarded_to=target, state=state
        )

    async def _respond(
        self,
        reply: ReplyFn,
        text: str,
        *,
        role: SenderRole,
        record: HandoffRecord | None = None,
    ) -> RouteResult:
        await reply(text)
        return RouteResult(
            action=RouteAction.REPLIED,
            role=role,
            replies=[text],
            state=record.state if record is not None else None,
        )

    async def _fail(self, reply: ReplyFn, **fields: Any) -> RouteResult:
        text = self._config.replies.failure
        await reply(text)
        return RouteResult(action=RouteAction.FAILED, replies=[text], **fields)
