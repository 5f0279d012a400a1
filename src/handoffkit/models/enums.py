"""All string enums for handoffkit."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class HandoffState(StrEnum):
    BOT = "bot"
    QUEUED = "queued"
    WITH_AGENT = "with_agent"


@unique
class SenderRole(StrEnum):
    USER = "user"
    AGENT = "agent"


@unique
class UserCommand(StrEnum):
    """Plain-text commands a user can send."""

    AGENT = "agent"
    CANCEL = "cancel"


@unique
class AgentCommand(StrEnum):
    """``#``-prefixed commands an agent can send."""

    LIST = "list"
    CONNECT = "connect"
    DISCONNECT = "disconnect"


@unique
class RouteAction(StrEnum):
    """What the router did with one inbound message."""

    PASS_THROUGH = "pass_through"
    REPLIED = "replied"
    FORWARDED = "forwarded"
    NO_OP = "no_op"
    FAILED = "failed"
