"""Conversation identity models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ChannelAccount(BaseModel):
    """An account on a chat channel (a user, an agent or the bot itself)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""


class ConversationAccount(BaseModel):
    """The conversation a counterpart is reachable in."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    is_group: bool = False
    conversation_type: str | None = None
    tenant_id: str | None = None


class ConversationIdentity(BaseModel):
    """Stable reference to one conversational counterpart.

    Carries the account id and display name of the counterpart plus the
    transport metadata needed to reopen a conversation with it later
    (channel, service endpoint, conversation and bot accounts).

    Records are keyed by :attr:`id` only: two identities with the same id
    but a different display name or service URL denote the same
    counterpart.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    channel_id: str = ""
    service_url: str = ""
    conversation: ConversationAccount | None = None
    bot: ChannelAccount | None = None

    @property
    def display_name(self) -> str:
        """Name shown to the other side, falling back to the account id."""
        return self.name or self.id

    def same_as(self, other: ConversationIdentity | None) -> bool:
        """Return True if *other* refers to the same counterpart."""
        return other is not None and other.id == self.id

    @classmethod
    def from_reference(cls, reference: dict[str, Any]) -> ConversationIdentity:
        """Build an identity from a serialized Bot Framework ConversationReference.

        Raises:
            ValueError: If the reference carries no ``user.id``.
        """
        user = reference.get("user") or {}
        user_id = user.get("id")
        if not user_id:
            raise ValueError("Conversation reference has no user id")

        conversation = reference.get("conversation") or None
        bot = reference.get("bot") or None
        return cls(
            id=user_id,
            name=user.get("name") or "",
            channel_id=reference.get("channelId") or "",
            service_url=reference.get("serviceUrl") or "",
            conversation=(
                ConversationAccount(
                    id=conversation.get("id", ""),
                    name=conversation.get("name"),
                    is_group=bool(conversation.get("isGroup", False)),
                    conversation_type=conversation.get("conversationType"),
                    tenant_id=conversation.get("tenantId"),
                )
                if conversation
                else None
            ),
            bot=ChannelAccount(id=bot.get("id", ""), name=bot.get("name") or "") if bot else None,
        )

    def to_reference(self) -> dict[str, Any]:
        """Serialize into the camelCase ConversationReference shape."""
        ref: dict[str, Any] = {
            "user": {"id": self.id, "name": self.name},
            "channelId": self.channel_id,
            "serviceUrl": self.service_url,
        }
        if self.conversation is not None:
            conv: dict[str, Any] = {
                "id": self.conversation.id,
                "isGroup": self.conversation.is_group,
            }
            if self.conversation.name is not None:
                conv["name"] = self.conversation.name
            if self.conversation.conversation_type is not None:
                conv["conversationType"] = self.conversation.conversation_type
            if self.conversation.tenant_id is not None:
                conv["tenantId"] = self.conversation.tenant_id
            ref["conversation"] = conv
        if self.bot is not None:
            ref["bot"] = {"id": self.bot.id, "name": self.bot.name}
        return ref
