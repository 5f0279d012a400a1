"""Console telemetry provider: span and metric summaries through logging."""

from __future__ import annotations

import logging
from typing import Any

from handoffkit.telemetry.base import Span, SpanTrackingProvider

logger = logging.getLogger("handoffkit.telemetry")


def _fmt(attributes: dict[str, Any]) -> str:
    if not attributes:
        return ""
    return " [" + ", ".join(f"{k}={v}" for k, v in attributes.items()) + "]"


class ConsoleTelemetryProvider(SpanTrackingProvider):
    """Writes one line per finished span and per metric to ``handoffkit.telemetry``.

    Example::

        logging.basicConfig(level=logging.INFO)
        router = HandoffRouter(transport, telemetry=ConsoleTelemetryProvider())
    """

    def __init__(self, *, level: int = logging.INFO) -> None:
        super().__init__()
        self._level = level

    @property
    def name(self) -> str:
        return "console"

    def on_span_end(self, span: Span) -> None:
        if span.status == "error":
            logger.log(
                self._level,
                "[SPAN ERROR] %s %s %.1fms%s error=%s",
                span.kind,
                span.name,
                span.duration_ms or 0.0,
                _fmt(span.attributes),
                span.error_message or "unknown",
            )
            return
        logger.log(
            self._level,
            "[SPAN END] %s %s %.1fms%s",
            span.kind,
            span.name,
            span.duration_ms or 0.0,
            _fmt(span.attributes),
        )

    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        logger.log(
            self._level,
            "[METRIC] %s = %.2f%s%s",
            name,
            value,
            f" {unit}" if unit else "",
            _fmt(attributes or {}),
        )

    def close(self) -> None:
        if self.active_spans:
            logger.warning("Telemetry closed with %d active spans", self.active_spans)
        self.reset()
