"""Microsoft Bot Framework transport and middleware."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from handoffkit.models.delivery import SendResult
from handoffkit.models.identity import ConversationIdentity
from handoffkit.transport.activity import parse_activity
from handoffkit.transport.base import ConversationTransport
from handoffkit.transport.config import BotFrameworkConfig

if TYPE_CHECKING:
    from botbuilder.core import BotFrameworkAdapter, TurnContext

    from handoffkit.core.router import HandoffRouter

logger = logging.getLogger("handoffkit.transport")


class BotFrameworkTransport(ConversationTransport):
    """Send messages into existing conversations via the Bot Framework SDK.

    Uses ``continue_conversation`` with the ConversationReference carried
    by each ``ConversationIdentity``, so any user or agent the bot has
    heard from can be messaged proactively.
    """

    def __init__(
        self,
        config: BotFrameworkConfig | None = None,
        *,
        adapter: Any = None,
    ) -> None:
        self._config = config or BotFrameworkConfig()
        if adapter is None:
            try:
                from botbuilder.core import BotFrameworkAdapter, BotFrameworkAdapterSettings
            except ImportError as exc:
                raise ImportError(
                    "botbuilder-core is required for BotFrameworkTransport. "
                    "Install it with: pip install handoffkit[teams]"
                ) from exc

            settings_kwargs: dict[str, Any] = {
                "app_id": self._config.app_id,
                "app_password": self._config.password,
            }
            if self._config.tenant_id != "common":
                settings_kwargs["channel_auth_tenant"] = self._config.tenant_id
            adapter = BotFrameworkAdapter(BotFrameworkAdapterSettings(**settings_kwargs))
        self._adapter: BotFrameworkAdapter = adapter

    @property
    def adapter(self) -> BotFrameworkAdapter:
        """The underlying Bot Framework adapter."""
        return self._adapter

    async def send(self, identity: ConversationIdentity, text: str) -> SendResult:
        if not text:
            return SendResult(success=False, error="empty_message")
        if not identity.service_url or identity.conversation is None:
            return SendResult(
                success=False,
                error="no_conversation_reference",
                metadata={"identity_id": identity.id},
            )

        try:
            from botbuilder.core import TurnContext
            from botbuilder.schema import Activity, ConversationReference

            conv_ref = ConversationReference().deserialize(identity.to_reference())
            message_id: str | None = None

            async def _send_callback(turn_context: TurnContext) -> None:
                nonlocal message_id
                response = await turn_context.send_activity(Activity(type="message", text=text))
                if response and response.id:
                    message_id = response.id

            await self._adapter.continue_conversation(
                conv_ref,
                _send_callback,
                self._config.app_id,
            )
        except Exception as exc:
            logger.warning(
                "Bot Framework send to %s failed: %s",
                identity.id,
                exc,
                extra={"identity_id": identity.id},
            )
            return SendResult(success=False, error=str(exc))

        return SendResult(success=True, message_id=message_id)


class BotFrameworkHandoffMiddleware:
    """botbuilder middleware that puts a ``HandoffRouter`` in front of the bot.

    Register it on the adapter so every turn passes through the router
    before reaching the bot logic::

        adapter.use(BotFrameworkHandoffMiddleware(router))
    """

    def __init__(self, router: HandoffRouter) -> None:
        self._router = router

    @property
    def router(self) -> HandoffRouter:
        return self._router

    async def on_turn(
        self,
        context: TurnContext,
        logic: Callable[[], Awaitable[Any]],
    ) -> None:
        activity = parse_activity(context.activity.serialize())
        if activity is None:
            await logic()
            return

        async def reply(text: str) -> None:
            await context.send_activity(text)

        await self._router.handle(activity, reply, logic)
