"""Mock telemetry provider for test assertions."""

from __future__ import annotations

from typing import Any

from handoffkit.telemetry.base import Span, SpanKind, SpanTrackingProvider


class MockTelemetryProvider(SpanTrackingProvider):
    """Keeps every finished span and metric in memory.

    Example::

        telemetry = MockTelemetryProvider()
        router = HandoffRouter(transport, telemetry=telemetry)
        # ... route some messages ...
        inbound = telemetry.get_spans(SpanKind.HANDOFF_INBOUND)
        assert inbound[0].attributes["route.action"] == "replied"
    """

    def __init__(self) -> None:
        super().__init__()
        self.spans: list[Span] = []
        self.metrics: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "mock"

    def on_span_end(self, span: Span) -> None:
        self.spans.append(span)

    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        self.metrics.append(
            {"name": name, "value": value, "unit": unit, "attributes": dict(attributes or {})}
        )

    def get_spans(self, kind: SpanKind) -> list[Span]:
        return [s for s in self.spans if s.kind == kind]

    def get_metrics(self, name: str) -> list[dict[str, Any]]:
        return [m for m in self.metrics if m["name"] == name]

    def reset(self) -> None:
        super().reset()
        self.spans.clear()
        self.metrics.clear()
