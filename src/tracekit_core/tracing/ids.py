"""Random trace and span identifiers in OTLP hex form."""

import secrets

from opentelemetry.trace import (
    INVALID_SPAN_ID,
    INVALID_TRACE_ID,
    format_span_id,
    format_trace_id,
)


def generate_trace_id() -> str:
    """Return 16 random bytes as 32 lowercase hex characters."""
    trace_id = INVALID_TRACE_ID
    while trace_id == INVALID_TRACE_ID:
        trace_id = secrets.randbits(128)
    return format_trace_id(trace_id)


def generate_span_id() -> str:
    """Return 8 random bytes as 16 lowercase hex characters."""
    span_id = INVALID_SPAN_ID
    while span_id == INVALID_SPAN_ID:
        span_id = secrets.randbits(64)
    return format_span_id(span_id)
