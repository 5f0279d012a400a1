"""Handoff router configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HandoffReplies(BaseModel):
    """Canned texts the router sends back to users and agents.

    ``connected_to_user`` is formatted with ``name`` (the user's display
    name).  Leave ``unknown_command`` as ``None`` to ignore unrecognised
    agent commands silently.
    """

    waiting_for_agent: str = "Waiting for agent"
    connected_to_bot: str = "Connected to bot"
    reconnected_to_bot: str = "Reconnected to bot"
    connected_to_user: str = "Connected to {name}"
    nobody_in_queue: str = "Nobody in the queue."
    command_not_valid: str = "Command not valid when connected to user."
    queue_empty: str = "The queue is empty."
    unknown_command: str | None = None
    failure: str = "Sorry, something went wrong. Please try again."


class HandoffConfig(BaseModel):
    """Configuration for :class:`~handoffkit.core.router.HandoffRouter`.

    Attributes:
        agent_name_prefix: Display-name prefix identifying agents when no
            custom agent policy is given.
        forward_timeout_seconds: Upper bound for delivering a message to
            the counterpart conversation.
        replies: Texts sent back by the router.
    """

    agent_name_prefix: str = Field(default="agent", min_length=1)
    forward_timeout_seconds: float = Field(default=10.0, gt=0)
    replies: HandoffReplies = Field(default_factory=HandoffReplies)
