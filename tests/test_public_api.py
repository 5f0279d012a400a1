"""Tests for public API surface."""

from __future__ import annotations

import handoffkit


class TestPublicAPI:
    def test_version_string(self) -> None:
        assert isinstance(handoffkit.__version__, str)
        assert handoffkit.__version__ == "0.1.0"

    def test_all_names_importable(self) -> None:
        for name in handoffkit.__all__:
            obj = getattr(handoffkit, name)
            assert obj is not None, f"{name} is None"

    def test_core_classes_available(self) -> None:
        assert handoffkit.HandoffRouter is not None
        assert handoffkit.HandoffRecord is not None
        assert handoffkit.InMemoryHandoffStore is not None
        assert handoffkit.ConversationIdentity is not None

    def test_subpackage_imports(self) -> None:
        from handoffkit.core import router
        from handoffkit.models import enums
        from handoffkit.store import memory
        from handoffkit.telemetry import mock
        from handoffkit.transport import base

        assert router is not None
        assert enums is not None
        assert memory is not None
        assert mock is not None
        assert base is not None

    def test_exception_classes(self) -> None:
        assert issubclass(handoffkit.HandoffError, Exception)
        assert issubclass(handoffkit.RecordNotFoundError, handoffkit.HandoffError)
        assert issubclass(handoffkit.AgentAlreadyPairedError, handoffkit.HandoffError)
        assert issubclass(handoffkit.StoreUnavailableError, handoffkit.HandoffError)

    def test_postgres_store_not_imported_eagerly(self) -> None:
        assert "PostgresHandoffStore" not in handoffkit.__all__
