# Use an explicit re-export https://github.com/astral-sh/ruff/issues/5697#issuecomment-1631647211

from tracekit_core.models.models import (
    SpanKind as SpanKind,
    SpanEvent as SpanEvent,
    Span as Span,
    SpanRef as SpanRef,
)

from tracekit_core.models.config import (
    TraceKitConfig as TraceKitConfig,
)
