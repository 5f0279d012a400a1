"""Microsoft Teams echo bot with human handoff.

Users type ``agent`` to wait for a human and ``cancel`` to go back to the
bot.  Anyone whose display name starts with "Agent" can use ``#list``,
``#connect`` and ``#disconnect``.  Everything else is echoed by the bot.

Requires:
    pip install handoffkit[teams] aiohttp

Run with:
    MICROSOFT_APP_ID=... MICROSOFT_APP_PASSWORD=... python examples/teams_handoff_bot.py

Leave both variables unset to test locally with the Bot Framework Emulator.
Set POSTGRES_DSN (and install handoffkit[postgres]) to keep handoff state
in PostgreSQL instead of memory.
"""

from __future__ import annotations

import asyncio
import logging
import os

from aiohttp import web
from botbuilder.core import TurnContext
from botbuilder.schema import Activity

from handoffkit import (
    BotFrameworkConfig,
    BotFrameworkHandoffMiddleware,
    BotFrameworkTransport,
    ConsoleTelemetryProvider,
    HandoffRouter,
    HandoffStore,
    InMemoryHandoffStore,
)


async def make_store() -> HandoffStore:
    dsn = os.environ.get("POSTGRES_DSN")
    if not dsn:
        return InMemoryHandoffStore()

    from handoffkit.store.postgres import PostgresHandoffStore

    store = PostgresHandoffStore(dsn=dsn)
    await store.init()
    return store


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    # --- Handoff setup ---------------------------------------------------------
    transport = BotFrameworkTransport(BotFrameworkConfig.from_env())
    store = await make_store()
    router = HandoffRouter(transport, store=store, telemetry=ConsoleTelemetryProvider())

    adapter = transport.adapter
    adapter.use(BotFrameworkHandoffMiddleware(router))

    # --- Bot logic (only reached when the router passes the message on) --------
    async def echo(turn_context: TurnContext) -> None:
        if turn_context.activity.type == "message" and turn_context.activity.text:
            await turn_context.send_activity(f"Echo: {turn_context.activity.text}")

    # --- aiohttp webhook handler -----------------------------------------------
    async def handle_messages(request: web.Request) -> web.Response:
        body = await request.json()
        activity = Activity().deserialize(body)
        auth_header = request.headers.get("Authorization", "")
        response = await adapter.process_activity(activity, auth_header, echo)
        if response:
            return web.json_response(data=response.body, status=response.status)
        return web.Response(status=201)

    app = web.Application()
    app.router.add_post("/api/messages", handle_messages)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", 3978)
    print("Bot listening on http://0.0.0.0:3978/api/messages")
    await site.start()

    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
