"""Bot Framework Activity parsing helpers."""

from __future__ import annotations

import re
from typing import Any

from handoffkit.models.delivery import InboundActivity
from handoffkit.models.identity import ConversationIdentity

_AT_MENTION_RE = re.compile(r"<at>[^<]*</at>\s*")


def conversation_reference(payload: dict[str, Any]) -> dict[str, Any]:
    """Build the ConversationReference dict for the sender of an Activity.

    Mirrors ``TurnContext.get_conversation_reference``: the sender becomes
    ``user`` and the recipient becomes ``bot``.  The Teams tenant id is
    copied from ``channelData`` when the conversation does not carry it.
    """
    conversation = dict(payload.get("conversation") or {})
    tenant_id = (payload.get("channelData") or {}).get("tenant", {}).get("id")
    if tenant_id and not conversation.get("tenantId"):
        conversation["tenantId"] = tenant_id
    return {
        "activityId": payload.get("id"),
        "user": payload.get("from") or {},
        "bot": payload.get("recipient") or {},
        "conversation": conversation,
        "channelId": payload.get("channelId", ""),
        "serviceUrl": payload.get("serviceUrl", ""),
    }


def parse_activity(payload: dict[str, Any]) -> InboundActivity | None:
    """Convert a Bot Framework Activity payload into an ``InboundActivity``.

    Returns ``None`` when the Activity has no sender id.  Non-message
    activities are returned with their type so the router can pass them
    through.  ``<at>BotName</at>`` mention tags are stripped from group
    chat messages.
    """
    reference = conversation_reference(payload)
    try:
        sender = ConversationIdentity.from_reference(reference)
    except ValueError:
        return None

    text = payload.get("text")
    if text and sender.conversation is not None and sender.conversation.is_group:
        text = _AT_MENTION_RE.sub("", text).strip()

    return InboundActivity(
        sender=sender,
        type=payload.get("type", ""),
        text=text,
        id=payload.get("id"),
        metadata={
            "locale": payload.get("locale", ""),
            "reply_to_id": payload.get("replyToId") or "",
        },
    )
