"""Shared test fixtures and helpers."""

from __future__ import annotations

from typing import Any

import pytest

from handoffkit.core.router import HandoffRouter
from handoffkit.models.delivery import InboundActivity
from handoffkit.models.identity import ChannelAccount, ConversationAccount, ConversationIdentity
from handoffkit.store.memory import InMemoryHandoffStore
from handoffkit.telemetry.mock import MockTelemetryProvider
from handoffkit.transport.mock import MockTransport


@pytest.fixture
def store() -> InMemoryHandoffStore:
    return InMemoryHandoffStore()


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def telemetry() -> MockTelemetryProvider:
    return MockTelemetryProvider()


@pytest.fixture
def router(
    store: InMemoryHandoffStore,
    transport: MockTransport,
    telemetry: MockTelemetryProvider,
) -> HandoffRouter:
    return HandoffRouter(transport, store=store, telemetry=telemetry)


def make_identity(
    id: str = "user-1",
    name: str | None = None,
    **kwargs: Any,
) -> ConversationIdentity:
    return ConversationIdentity(
        id=id,
        name=name if name is not None else id,
        channel_id=kwargs.pop("channel_id", "msteams"),
        service_url=kwargs.pop("service_url", "https://smba.trafficmanager.net/teams/"),
        conversation=kwargs.pop("conversation", ConversationAccount(id=f"conv-{id}")),
        bot=kwargs.pop("bot", ChannelAccount(id="bot-1", name="HandoffBot")),
        **kwargs,
    )


def make_activity(
    sender: ConversationIdentity,
    text: str | None = "hello",
    type: str = "message",
) -> InboundActivity:
    return InboundActivity(sender=sender, type=type, text=text)


class Turn:
    """Captures the replies and downstream calls of one routed message."""

    def __init__(self) -> None:
        self.replies: list[str] = []
        self.next_calls = 0

    async def reply(self, text: str) -> None:
        self.replies.append(text)

    async def call_next(self) -> None:
        self.next_calls += 1


async def send(
    router: HandoffRouter,
    sender: ConversationIdentity,
    text: str | None = "hello",
    type: str = "message",
) -> tuple[Any, Turn]:
    """Route one message through *router* and return its result and captured turn."""
    turn = Turn()
    result = await router.handle(make_activity(sender, text, type), turn.reply, turn.call_next)
    return result, turn
