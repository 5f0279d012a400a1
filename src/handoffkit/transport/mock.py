"""Mock transport for testing."""

from __future__ import annotations

from uuid import uuid4

from handoffkit.models.delivery import SendResult
from handoffkit.models.identity import ConversationIdentity
from handoffkit.transport.base import ConversationTransport


class MockTransport(ConversationTransport):
    """Records sent messages for verification in tests.

    Set ``fail_with`` to make every send report failure with that error.
    """

    def __init__(self, *, fail_with: str | None = None) -> None:
        self.sent: list[dict[str, str | ConversationIdentity]] = []
        self.fail_with = fail_with

    @property
    def name(self) -> str:
        return "mock"

    async def send(self, identity: ConversationIdentity, text: str) -> SendResult:
        if self.fail_with is not None:
            return SendResult(success=False, error=self.fail_with)
        self.sent.append({"to": identity, "text": text})
        return SendResult(success=True, message_id=uuid4().hex)

    def texts_to(self, identity_id: str) -> list[str]:
        """Texts delivered to the counterpart with *identity_id*, oldest first."""
        return [
            str(m["text"])
            for m in self.sent
            if isinstance(m["to"], ConversationIdentity) and m["to"].id == identity_id
        ]
