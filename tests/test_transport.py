"""Tests for the transport layer: activity parsing, config, mock and Bot Framework."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from pydantic import ValidationError

from handoffkit.core.router import HandoffRouter
from handoffkit.models.enums import HandoffState
from handoffkit.store.memory import InMemoryHandoffStore
from handoffkit.transport.activity import conversation_reference, parse_activity
from handoffkit.transport.bot_framework import (
    BotFrameworkHandoffMiddleware,
    BotFrameworkTransport,
)
from handoffkit.transport.config import BotFrameworkConfig
from handoffkit.transport.mock import MockTransport
from tests.conftest import make_identity


def _teams_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "message",
        "id": "act-1",
        "text": "agent",
        "locale": "en-US",
        "channelId": "msteams",
        "serviceUrl": "https://smba.trafficmanager.net/emea/",
        "from": {"id": "29:user", "name": "Alice"},
        "recipient": {"id": "28:bot", "name": "Helpdesk"},
        "conversation": {"id": "a:conv", "conversationType": "personal"},
        "channelData": {"tenant": {"id": "tenant-1"}},
    }
    payload.update(overrides)
    return payload


class FakeTurnContext:
    def __init__(self, payload: dict[str, Any]) -> None:
        self.activity = SimpleNamespace(serialize=lambda: payload)
        self.sent: list[Any] = []

    async def send_activity(self, activity: Any) -> Any:
        self.sent.append(activity)
        return SimpleNamespace(id=f"reply-{len(self.sent)}")


class FakeAdapter:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[Any, str]] = []
        self.contexts: list[FakeTurnContext] = []

    async def continue_conversation(self, reference: Any, callback: Any, bot_id: str) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append((reference, bot_id))
        context = FakeTurnContext({})
        self.contexts.append(context)
        await callback(context)


class TestParseActivity:
    def test_message(self) -> None:
        activity = parse_activity(_teams_payload())
        assert activity is not None
        assert activity.type == "message"
        assert activity.text == "agent"
        assert activity.id == "act-1"
        assert activity.sender.id == "29:user"
        assert activity.sender.name == "Alice"
        assert activity.sender.service_url == "https://smba.trafficmanager.net/emea/"
        assert activity.sender.bot is not None
        assert activity.sender.bot.id == "28:bot"
        assert activity.metadata == {"locale": "en-US", "reply_to_id": ""}

    def test_tenant_copied_from_channel_data(self) -> None:
        reference = conversation_reference(_teams_payload())
        assert reference["conversation"]["tenantId"] == "tenant-1"
        assert reference["user"] == {"id": "29:user", "name": "Alice"}
        assert reference["bot"] == {"id": "28:bot", "name": "Helpdesk"}

    def test_existing_tenant_kept(self) -> None:
        payload = _teams_payload(conversation={"id": "a:conv", "tenantId": "own"})
        assert conversation_reference(payload)["conversation"]["tenantId"] == "own"

    def test_no_sender(self) -> None:
        assert parse_activity(_teams_payload(**{"from": None})) is None

    def test_non_message_activity(self) -> None:
        activity = parse_activity(_teams_payload(type="conversationUpdate", text=None))
        assert activity is not None
        assert not activity.is_text_message

    def test_mentions_stripped_in_group_chat(self) -> None:
        payload = _teams_payload(
            text="<at>Helpdesk</at> #connect",
            conversation={"id": "19:chan", "isGroup": True},
        )
        activity = parse_activity(payload)
        assert activity is not None
        assert activity.text == "#connect"

    def test_mentions_kept_in_personal_chat(self) -> None:
        activity = parse_activity(_teams_payload(text="<at>Helpdesk</at> hi"))
        assert activity is not None
        assert activity.text == "<at>Helpdesk</at> hi"


class TestBotFrameworkConfig:
    def test_emulator_defaults(self) -> None:
        config = BotFrameworkConfig()
        assert config.app_id == ""
        assert config.password == ""
        assert config.tenant_id == "common"

    def test_password_is_secret(self) -> None:
        config = BotFrameworkConfig(app_id="app", app_password="s3cret")
        assert config.password == "s3cret"
        assert "s3cret" not in repr(config)

    def test_app_id_requires_password(self) -> None:
        with pytest.raises(ValidationError, match="app_password is required"):
            BotFrameworkConfig(app_id="app")

    def test_password_requires_app_id(self) -> None:
        with pytest.raises(ValidationError, match="without app_id"):
            BotFrameworkConfig(app_password="s3cret")

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MICROSOFT_APP_ID", "app")
        monkeypatch.setenv("MICROSOFT_APP_PASSWORD", "s3cret")
        monkeypatch.setenv("MICROSOFT_APP_TENANT_ID", "tenant-1")
        config = BotFrameworkConfig.from_env()
        assert config.app_id == "app"
        assert config.password == "s3cret"
        assert config.tenant_id == "tenant-1"

    def test_from_env_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in ("MICROSOFT_APP_ID", "MICROSOFT_APP_PASSWORD", "MICROSOFT_APP_TENANT_ID"):
            monkeypatch.delenv(var, raising=False)
        assert BotFrameworkConfig.from_env() == BotFrameworkConfig()


class TestMockTransport:
    async def test_records_sends(self) -> None:
        transport = MockTransport()
        agent = make_identity("agent-1", "Agent Smith")

        result = await transport.send(agent, "hi")

        assert result.success
        assert result.message_id
        assert transport.texts_to("agent-1") == ["hi"]
        assert transport.name == "mock"

    async def test_fail_with(self) -> None:
        transport = MockTransport(fail_with="unreachable")
        result = await transport.send(make_identity(), "hi")
        assert not result.success
        assert result.error == "unreachable"
        assert transport.sent == []


class TestBotFrameworkTransport:
    async def test_rejects_empty_text(self) -> None:
        transport = BotFrameworkTransport(adapter=FakeAdapter())
        result = await transport.send(make_identity(), "")
        assert result.error == "empty_message"

    async def test_requires_conversation_reference(self) -> None:
        transport = BotFrameworkTransport(adapter=FakeAdapter())
        result = await transport.send(make_identity(service_url=""), "hi")
        assert result.error == "no_conversation_reference"
        assert result.metadata == {"identity_id": "user-1"}

    async def test_send(self) -> None:
        pytest.importorskip("botbuilder.core")
        adapter = FakeAdapter()
        config = BotFrameworkConfig(app_id="app", app_password="s3cret")
        transport = BotFrameworkTransport(config, adapter=adapter)

        result = await transport.send(make_identity("29:user", "Alice"), "hello")

        assert result.success
        assert result.message_id == "reply-1"
        [(reference, bot_id)] = adapter.calls
        assert bot_id == "app"
        assert reference.user.id == "29:user"
        assert reference.conversation.id == "conv-29:user"
        [activity] = adapter.contexts[0].sent
        assert activity.text == "hello"

    async def test_send_error_becomes_failed_result(self) -> None:
        pytest.importorskip("botbuilder.core")
        adapter = FakeAdapter(error=RuntimeError("403 Forbidden"))
        transport = BotFrameworkTransport(adapter=adapter)

        result = await transport.send(make_identity(), "hello")

        assert not result.success
        assert result.error == "403 Forbidden"


class TestBotFrameworkHandoffMiddleware:
    @pytest.fixture
    def middleware(self) -> BotFrameworkHandoffMiddleware:
        return BotFrameworkHandoffMiddleware(HandoffRouter(MockTransport()))

    async def test_intercepts_commands(self, middleware: BotFrameworkHandoffMiddleware) -> None:
        context = FakeTurnContext(_teams_payload(text="agent"))
        calls = 0

        async def logic() -> None:
            nonlocal calls
            calls += 1

        await middleware.on_turn(context, logic)

        assert context.sent == ["Waiting for agent"]
        assert calls == 0
        store = middleware.router.store
        assert isinstance(store, InMemoryHandoffStore)
        record = await store.get("29:user")
        assert record is not None
        assert record.state == HandoffState.QUEUED
        assert record.identity.conversation is not None
        assert record.identity.conversation.tenant_id == "tenant-1"

    async def test_passes_other_messages_to_bot(
        self, middleware: BotFrameworkHandoffMiddleware
    ) -> None:
        context = FakeTurnContext(_teams_payload(text="hello"))
        calls = 0

        async def logic() -> None:
            nonlocal calls
            calls += 1

        await middleware.on_turn(context, logic)

        assert calls == 1
        assert context.sent == []

    async def test_unparseable_activity_goes_to_bot(
        self, middleware: BotFrameworkHandoffMiddleware
    ) -> None:
        context = FakeTurnContext(_teams_payload(**{"from": None}))
        calls = 0

        async def logic() -> None:
            nonlocal calls
            calls += 1

        await middleware.on_turn(context, logic)
        assert calls == 1
