from enum import IntEnum
from typing import Any, List, Optional

from opentelemetry import trace
from opentelemetry.trace import StatusCode
from pydantic import BaseModel, ConfigDict, Field, computed_field


class SpanKind(IntEnum):
    """Span kinds using the OTLP wire numbering."""

    UNSPECIFIED = 0
    INTERNAL = 1
    SERVER = 2
    CLIENT = 3
    PRODUCER = 4
    CONSUMER = 5

    @classmethod
    def coerce(cls, value: Any) -> 'SpanKind':
        """Convert a loosely typed kind to a SpanKind.

        Accepts SpanKind members, OTLP integers, kind names and
        ``opentelemetry.trace.SpanKind`` members (mapped by name, since the
        OpenTelemetry API numbers them differently). Anything else becomes
        ``INTERNAL``.
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, trace.SpanKind):
            return cls[value.name]

        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper(), cls.INTERNAL)

        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                return cls.INTERNAL

        return cls.INTERNAL


class SpanEvent(BaseModel):
    name: str
    time: int
    """Event time in nanoseconds since the Unix epoch"""
    attributes: dict[str, Any] = Field(default_factory=dict)


class Span(BaseModel):
    """A timed operation recorded by the tracer."""

    trace_id: str
    span_id: str
    parent_span_id: Optional[str] = None
    name: str
    kind: SpanKind = SpanKind.INTERNAL
    start_time: int
    """Start time in nanoseconds since the Unix epoch"""
    end_time: Optional[int] = None
    """End time in nanoseconds since the Unix epoch, None while the span is open"""
    attributes: dict[str, Any] = Field(default_factory=dict)
    status: StatusCode = StatusCode.OK
    events: List[SpanEvent] = Field(default_factory=list)

    @computed_field
    @property
    def duration(self) -> Optional[int]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def is_ended(self) -> bool:
        return self.end_time is not None

    def to_ref(self) -> 'SpanRef':
        return SpanRef(
            span_id=self.span_id, trace_id=self.trace_id, start_time=self.start_time
        )


class SpanRef(BaseModel):
    """Handle returned to callers when a span is started.

    Span-creation calls return None instead of a SpanRef when the trace is not
    sampled or tracing is disabled; every operation accepting a SpanRef treats
    None as a no-op handle.
    """

    model_config = ConfigDict(frozen=True)

    span_id: str
    trace_id: str
    start_time: int

