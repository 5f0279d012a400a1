"""Abstract base class for conversation transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from handoffkit.models.delivery import SendResult
from handoffkit.models.identity import ConversationIdentity

ReplyFn = Callable[[str], Awaitable[object]]
"""Sends a text reply to the sender of the message being routed."""

NextFn = Callable[[], Awaitable[object]]
"""Hands the message to the next stage of the bot pipeline."""


class ConversationTransport(ABC):
    """Opens a conversation with any counterpart and sends text into it."""

    @property
    def name(self) -> str:
        """Transport name."""
        return self.__class__.__name__

    @abstractmethod
    async def send(self, identity: ConversationIdentity, text: str) -> SendResult:
        """Deliver *text* to the conversation identified by *identity*.

        Args:
            identity: The counterpart to reach.
            text: Message text, delivered verbatim.

        Returns:
            Result with transport-specific delivery metadata.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override in subclasses that hold connections."""
