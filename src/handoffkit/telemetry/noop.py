"""No-op telemetry provider, the router default."""

from __future__ import annotations

from typing import Any

from handoffkit.telemetry.base import SpanKind, TelemetryProvider


class NoopTelemetryProvider(TelemetryProvider):
    """Discards everything."""

    @property
    def name(self) -> str:
        return "noop"

    def start_span(self, kind: SpanKind, name: str, **kwargs: Any) -> str:
        return ""

    def end_span(self, span_id: str, **kwargs: Any) -> None:
        pass

    def record_metric(self, name: str, value: float, **kwargs: Any) -> None:
        pass
