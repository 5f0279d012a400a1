"""Agent identification policies."""

from __future__ import annotations

from collections.abc import Callable

from handoffkit.models.identity import ConversationIdentity

AgentPolicy = Callable[[ConversationIdentity], bool]
"""Predicate deciding whether a sender is a human agent."""


def name_prefix_policy(prefix: str = "agent") -> AgentPolicy:
    """Treat senders whose display name starts with *prefix* as agents.

    The comparison is case-insensitive.
    """
    needle = prefix.casefold()

    def is_agent(identity: ConversationIdentity) -> bool:
        return identity.name.casefold().startswith(needle)

    return is_agent


def id_allowlist_policy(agent_ids: set[str] | frozenset[str]) -> AgentPolicy:
    """Treat exactly the given account ids as agents."""
    allowed = frozenset(agent_ids)

    def is_agent(identity: ConversationIdentity) -> bool:
        return identity.id in allowed

    return is_agent
