"""Telemetry provider interface and the span/metric vocabulary of the router."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class SpanKind(StrEnum):
    """What a span measures."""

    HANDOFF_INBOUND = "handoff.inbound"
    HANDOFF_FORWARD = "handoff.forward"
    CUSTOM = "custom"


class Attr:
    """Attribute keys used on router spans and metrics."""

    SENDER_ID = "sender_id"
    SENDER_ROLE = "sender_role"
    USER_ID = "user_id"
    AGENT_ID = "agent_id"

    ROUTE_ACTION = "route.action"
    HANDOFF_STATE = "handoff.state"

    FORWARD_TARGET = "forward.target"
    FORWARD_SUCCESS = "forward.success"

    TRANSPORT = "transport"


@dataclass
class Span:
    """One timed routing step."""

    kind: SpanKind = SpanKind.CUSTOM
    name: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    parent_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    status: str = "ok"
    error_message: str | None = None

    @property
    def duration_ms(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() * 1000

    def finish(
        self,
        status: str,
        error_message: str | None,
        attributes: dict[str, Any] | None,
    ) -> None:
        self.end_time = datetime.now(UTC)
        self.status = status
        self.error_message = error_message
        if attributes:
            self.attributes.update(attributes)


class TelemetryProvider(ABC):
    """Receives the spans and metrics emitted while routing messages.

    The router calls :meth:`start_span` / :meth:`end_span` around each
    inbound message and each forward, and :meth:`record_metric` for
    latencies and pairings.  ``NoopTelemetryProvider`` is the default.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def start_span(
        self,
        kind: SpanKind,
        name: str,
        *,
        parent_id: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> str:
        """Open a span and return its id."""

    @abstractmethod
    def end_span(
        self,
        span_id: str,
        *,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        """Close the span *span_id*; unknown ids are ignored."""

    @abstractmethod
    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None: ...

    def close(self) -> None:  # noqa: B027
        """Flush and release resources."""

    def reset(self) -> None:  # noqa: B027
        """Forget recorded state (tests)."""

    @contextmanager
    def span(self, kind: SpanKind, name: str, **kwargs: Any) -> Iterator[str]:
        """Run a block inside a span, marking it ``error`` if the block raises."""
        span_id = self.start_span(kind, name, **kwargs)
        try:
            yield span_id
        except Exception as exc:
            self.end_span(span_id, status="error", error_message=str(exc))
            raise
        self.end_span(span_id)


class SpanTrackingProvider(TelemetryProvider):
    """Base for providers that build :class:`Span` objects in memory.

    Subclasses receive every finished span through :meth:`on_span_end`.
    """

    def __init__(self) -> None:
        self._active: dict[str, Span] = {}

    @property
    def active_spans(self) -> int:
        return len(self._active)

    def start_span(
        self,
        kind: SpanKind,
        name: str,
        *,
        parent_id: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> str:
        span = Span(kind=kind, name=name, parent_id=parent_id, attributes=dict(attributes or {}))
        self._active[span.id] = span
        return span.id

    def end_span(
        self,
        span_id: str,
        *,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        span = self._active.pop(span_id, None)
        if span is None:
            return
        span.finish(status, error_message, attributes)
        self.on_span_end(span)

    @abstractmethod
    def on_span_end(self, span: Span) -> None: ...

    def reset(self) -> None:
        self._active.clear()
