"""
Helpers for wrapping application code in spans.

Both helpers use the tracer they are given, falling back to the tracer
registered for the current context. Without a tracer the wrapped code simply
runs.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Mapping, Optional, ParamSpec, TypeVar

from opentelemetry.trace import StatusCode

from tracekit_core.models.models import SpanKind
from tracekit_core.tracing.client import Tracer
from tracekit_core.tracing.registry import get_current_instance

P = ParamSpec('P')
R = TypeVar('R')


def resolve_tracer(tracer: Tracer | None = None) -> Tracer | None:
    """Return the given tracer or the one registered for the current context."""
    return tracer if tracer is not None else get_current_instance()


def traced_call(
    name: str,
    func: Callable[..., R],
    *args: Any,
    tracer: Tracer | None = None,
    attributes: Optional[Mapping[str, Any]] = None,
    kind: Any = SpanKind.INTERNAL,
    **kwargs: Any,
) -> R:
    """Call a function inside a span.

    The span is ended with ``StatusCode.OK`` when the function returns. When
    it raises, the exception is recorded, the span is ended with
    ``StatusCode.ERROR`` and the exception is re-raised unchanged.

    Parameters
    ----------
    name : str
        Span name.
    func : Callable
        The function to call with ``*args`` and ``**kwargs``.
    tracer : Tracer, optional
        Tracer to record the span on. Defaults to the current tracer.
    attributes : Mapping, optional
        Initial span attributes.
    kind : SpanKind, optional
        Span kind. Default ``SpanKind.INTERNAL``.

    Returns
    -------
    Any
        Whatever ``func`` returns.

    Example
    -------
    >>> rows = traced_call('load-orders', repository.load, customer_id, tracer=tracer)
    """
    tracer = resolve_tracer(tracer)

    if tracer is None:
        return func(*args, **kwargs)

    span = tracer.start_span(name, attributes, kind=kind)

    try:
        result = func(*args, **kwargs)
    except Exception as exc:
        tracer.record_exception(span, exc)
        tracer.end_span(span, status=StatusCode.ERROR)
        raise

    tracer.end_span(span, status=StatusCode.OK)
    return result


def traced(
    name: str | None = None,
    *,
    tracer: Tracer | None = None,
    attributes: Optional[Mapping[str, Any]] = None,
    kind: Any = SpanKind.INTERNAL,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator recording a span around each call of the function.

    Parameters
    ----------
    name : str, optional
        Span name. Defaults to the function's qualified name.
    tracer : Tracer, optional
        Tracer to record spans on. Defaults to the current tracer at call time.
    attributes : Mapping, optional
        Attributes added to every span. ``code.function`` is always set.
    kind : SpanKind, optional
        Span kind. Default ``SpanKind.INTERNAL``.

    Example
    -------
    >>> @traced('controller-operation', attributes={'controller.name': 'Orders'})
    ... def list_orders(request):
    ...     ...
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        span_name = name or func.__qualname__
        span_attributes = {'code.function': func.__qualname__, **(attributes or {})}

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            return traced_call(
                span_name,
                func,
                *args,
                tracer=tracer,
                attributes=span_attributes,
                kind=kind,
                **kwargs,
            )

        return wrapper

    return decorator
