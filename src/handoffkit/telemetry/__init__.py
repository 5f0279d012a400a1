"""Telemetry providers for handoffkit."""

from handoffkit.telemetry.base import Attr, Span, SpanKind, SpanTrackingProvider, TelemetryProvider
from handoffkit.telemetry.console import ConsoleTelemetryProvider
from handoffkit.telemetry.mock import MockTelemetryProvider
from handoffkit.telemetry.noop import NoopTelemetryProvider

__all__ = [
    "Attr",
    "ConsoleTelemetryProvider",
    "MockTelemetryProvider",
    "NoopTelemetryProvider",
    "Span",
    "SpanKind",
    "SpanTrackingProvider",
    "TelemetryProvider",
]
