"""Handoff record storage backends."""

from handoffkit.store.base import HandoffStore
from handoffkit.store.memory import InMemoryHandoffStore

__all__ = ["HandoffStore", "InMemoryHandoffStore"]
