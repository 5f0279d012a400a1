"""Conversation transports."""

from handoffkit.transport.activity import conversation_reference, parse_activity
from handoffkit.transport.base import ConversationTransport, NextFn, ReplyFn
from handoffkit.transport.bot_framework import BotFrameworkHandoffMiddleware, BotFrameworkTransport
from handoffkit.transport.config import BotFrameworkConfig
from handoffkit.transport.mock import MockTransport

__all__ = [
    "BotFrameworkConfig",
    "BotFrameworkHandoffMiddleware",
    "BotFrameworkTransport",
    "ConversationTransport",
    "MockTransport",
    "NextFn",
    "ReplyFn",
    "conversation_reference",
    "parse_activity",
]
