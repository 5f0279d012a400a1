"""handoffkit - route chat conversations between a bot and human agents."""

from handoffkit._version import __version__
from handoffkit.core.config import HandoffConfig, HandoffReplies
from handoffkit.core.locks import IdentityLockManager, InMemoryLockManager
from handoffkit.core.policy import AgentPolicy, id_allowlist_policy, name_prefix_policy
from handoffkit.core.router import (
    AgentAlreadyPairedError,
    HandoffError,
    HandoffRouter,
    RecordNotFoundError,
    StoreUnavailableError,
)
from handoffkit.models.delivery import InboundActivity, RouteResult, SendResult
from handoffkit.models.enums import (
    AgentCommand,
    HandoffState,
    RouteAction,
    SenderRole,
    UserCommand,
)
from handoffkit.models.identity import ChannelAccount, ConversationAccount, ConversationIdentity
from handoffkit.models.record import HandoffMessage, HandoffRecord
from handoffkit.store.base import HandoffStore
from handoffkit.store.memory import InMemoryHandoffStore
from handoffkit.telemetry import (
    ConsoleTelemetryProvider,
    MockTelemetryProvider,
    NoopTelemetryProvider,
    TelemetryProvider,
)
from handoffkit.transport import (
    BotFrameworkConfig,
    BotFrameworkHandoffMiddleware,
    BotFrameworkTransport,
    ConversationTransport,
    MockTransport,
    parse_activity,
)

__all__ = [
    "AgentAlreadyPairedError",
    "AgentCommand",
    "AgentPolicy",
    "BotFrameworkConfig",
    "BotFrameworkHandoffMiddleware",
    "BotFrameworkTransport",
    "ChannelAccount",
    "ConsoleTelemetryProvider",
    "ConversationAccount",
    "ConversationIdentity",
    "ConversationTransport",
    "HandoffConfig",
    "HandoffError",
    "HandoffMessage",
    "HandoffRecord",
    "HandoffReplies",
    "HandoffRouter",
    "HandoffState",
    "HandoffStore",
    "IdentityLockManager",
    "InMemoryHandoffStore",
    "InMemoryLockManager",
    "InboundActivity",
    "MockTelemetryProvider",
    "MockTransport",
    "NoopTelemetryProvider",
    "RecordNotFoundError",
    "RouteAction",
    "RouteResult",
    "SendResult",
    "SenderRole",
    "StoreUnavailableError",
    "TelemetryProvider",
    "UserCommand",
    "__version__",
    "id_allowlist_policy",
    "name_prefix_policy",
    "parse_activity",
]
