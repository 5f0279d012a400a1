"""Handoff quickstart: a user asks for an agent and gets bridged to one.

Uses MockTransport, so no Bot Framework credentials are needed. Every
message goes through the router exactly as it would inside the Bot
Framework middleware; the mock transport captures what would be
delivered to the other side.

Run with:
    python examples/quickstart.py
"""

from __future__ import annotations

import asyncio
import logging

from handoffkit import (
    ConversationIdentity,
    HandoffRouter,
    InboundActivity,
    InMemoryHandoffStore,
    MockTransport,
)


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    transport = MockTransport()
    store = InMemoryHandoffStore()
    router = HandoffRouter(transport, store=store)

    alice = ConversationIdentity(id="29:alice", name="Alice")
    agent = ConversationIdentity(id="29:sam", name="Agent Sam")

    async def say(sender: ConversationIdentity, text: str) -> None:
        print(f"\n{sender.display_name}> {text}")

        async def reply(reply_text: str) -> None:
            print(f"  bot -> {sender.display_name}: {reply_text}")

        async def bot_logic() -> None:
            print(f"  bot handles: {text!r}")

        before = len(transport.sent)
        result = await router.handle(
            InboundActivity(sender=sender, text=text), reply, bot_logic
        )
        for message in transport.sent[before:]:
            target = message["to"]
            assert isinstance(target, ConversationIdentity)
            print(f"  forwarded -> {target.display_name}: {message['text']}")
        print(f"  [{result.action}]")

    # --- Conversation ---------------------------------------------------------
    await say(alice, "What are your opening hours?")
    await say(alice, "agent")
    await say(agent, "#list")
    await say(agent, "#connect")
    await say(alice, "My order never arrived.")
    await say(agent, "Sorry about that, let me check.")
    await say(agent, "#disconnect")
    await say(alice, "thanks")

    # --- Transcript -----------------------------------------------------------
    record = await store.get(alice.id)
    assert record is not None
    print(f"\nAlice is back in state {record.state!r}. Transcript (oldest first):")
    for message in reversed(record.messages):
        print(f"  {message.sender}: {message.text}")


if __name__ == "__main__":
    asyncio.run(main())
