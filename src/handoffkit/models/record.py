"""Handoff record model."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field, model_validator

from handoffkit.models.enums import HandoffState
from handoffkit.models.identity import ConversationIdentity


class HandoffMessage(BaseModel):
    """One logged message: who said it and what was said."""

    sender: str
    text: str


class HandoffRecord(BaseModel):
    """Handoff state for one user.

    ``messages`` is ordered newest first. ``agent_identity`` is set exactly
    when the user is paired with an agent, ``queued_at`` exactly when the
    user is waiting in the queue.
    """

    identity: ConversationIdentity
    state: HandoffState = HandoffState.BOT
    messages: list[HandoffMessage] = Field(default_factory=list)
    agent_identity: ConversationIdentity | None = None
    queued_at: datetime | None = None

    @model_validator(mode="after")
    def _validate_state_fields(self) -> HandoffRecord:
        if (self.state == HandoffState.WITH_AGENT) != (self.agent_identity is not None):
            raise ValueError("agent_identity must be set if and only if state is 'with_agent'")
        if (self.state == HandoffState.QUEUED) != (self.queued_at is not None):
            raise ValueError("queued_at must be set if and only if state is 'queued'")
        return self

    @property
    def user_id(self) -> str:
        return self.identity.id

    # Transitions always build a fresh, validated record.

    def to_bot(self) -> HandoffRecord:
        return HandoffRecord(identity=self.identity, messages=list(self.messages))

    def to_queued(self, at: datetime | None = None) -> HandoffRecord:
        return HandoffRecord(
            identity=self.identity,
            state=HandoffState.QUEUED,
            messages=list(self.messages),
            queued_at=at or datetime.now(UTC),
        )

    def to_agent(self, agent: ConversationIdentity) -> HandoffRecord:
        return HandoffRecord(
            identity=self.identity,
            state=HandoffState.WITH_AGENT,
            messages=list(self.messages),
            agent_identity=agent,
        )

    def with_message(self, sender: str, text: str) -> HandoffRecord:
        """Return a copy with *text* prepended to the message log."""
        return self.model_copy(
            update={"messages": [HandoffMessage(sender=sender, text=text), *self.messages]}
        )
