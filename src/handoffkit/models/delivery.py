"""Inbound activity, transport send and routing result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from handoffkit.models.enums import HandoffState, RouteAction, SenderRole
from handoffkit.models.identity import ConversationIdentity


class InboundActivity(BaseModel):
    """An activity delivered by the transport layer."""

    sender: ConversationIdentity
    type: str = "message"
    text: str | None = None
    id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_text_message(self) -> bool:
        """True for ``message`` activities with non-empty text."""
        return self.type == "message" and bool(self.text)


class SendResult(BaseModel):
    """Result of a transport send."""

    success: bool
    message_id: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class RouteResult(BaseModel):
    """Outcome of routing one inbound activity."""

    action: RouteAction
    role: SenderRole | None = None
    replies: list[str] = Field(default_factory=list)
    forwarded_to: ConversationIdentity | None = None
    state: HandoffState | None = None
    error: str | None = None
