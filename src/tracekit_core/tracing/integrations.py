"""
Framework glue: request, controller and database query spans.

These helpers produce the span names and attributes the TraceKit dashboard
expects from web applications:

- ``http-request``: root span of an incoming request
- ``controller-operation``: the controller method handling the request
- ``database-query``: one span per executed query
"""

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Protocol, runtime_checkable

from opentelemetry.trace import StatusCode

from tracekit_core.models.models import SpanKind, SpanRef
from tracekit_core.tracing.client import Tracer
from tracekit_core.tracing.utils import resolve_tracer

MAX_ATTRIBUTE_LENGTH = 2000


def truncate(value: str, max_length: int = MAX_ATTRIBUTE_LENGTH) -> str:
    """Shorten a string to ``max_length`` characters, ending it with '...'."""
    if len(value) <= max_length:
        return value
    return value[: max(0, max_length - 3)] + '...'


def status_code_of(value: Any, default: int = 200) -> int:
    """Return ``value`` as an HTTP status code, or ``default`` when it is not one.

    Numeric strings such as ``'404'`` are accepted.
    """
    if value is None or isinstance(value, bool):
        return default

    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@runtime_checkable
class TracedRequest(Protocol):
    """The request details recorded on the ``http-request`` span."""

    method: str
    url: str
    route: str
    user_agent: Optional[str]
    body: Optional[str]


class RequestTrace:
    """Handle yielded by ``request_span``.

    Set ``status_code`` to the response status before leaving the block.
    """

    def __init__(self, tracer: Tracer | None, span: SpanRef | None):
        self.tracer = tracer
        self.span = span
        self.status_code: int = 200

    @property
    def trace_id(self) -> str | None:
        return self.span.trace_id if self.span is not None else None

    @property
    def is_recording(self) -> bool:
        return self.span is not None


def request_attributes(
    request: TracedRequest,
    include_body: bool = False,
    max_body_length: int = MAX_ATTRIBUTE_LENGTH,
) -> dict[str, Any]:
    attributes = {
        'http.method': request.method,
        'http.url': request.url,
        'http.user_agent': getattr(request, 'user_agent', None) or 'unknown',
        'http.route': request.route,
    }

    body = getattr(request, 'body', None)
    if include_body and body:
        attributes['http.request.body'] = truncate(str(body), max_body_length)

    return attributes


@contextmanager
def request_span(
    request: TracedRequest,
    tracer: Tracer | None = None,
    max_body_length: int = MAX_ATTRIBUTE_LENGTH,
) -> Iterator[RequestTrace]:
    """Record the root ``http-request`` span of a request and flush it.

    The span is ended with ``http.status_code`` taken from the yielded
    ``RequestTrace`` and marked as failed when the status is 400 or above.
    An exception escaping the block is recorded, reported as status 500 and
    re-raised.

    Parameters
    ----------
    request : TracedRequest
        The incoming request.
    tracer : Tracer, optional
        Tracer to record on. Defaults to the current tracer.
    max_body_length : int, optional
        Maximum length of the recorded request body. Default 2000.

    Yields
    ------
    RequestTrace
        Handle used to report the response status.

    Example
    -------
    >>> with request_span(request, tracer) as trace:
    ...     response = dispatch(request)
    ...     trace.status_code = response.status_code
    """
    tracer = resolve_tracer(tracer)

    if tracer is None or not tracer.is_enabled():
        yield RequestTrace(tracer, None)
        return

    span = tracer.start_trace(
        'http-request',
        request_attributes(request, tracer.should_trace_request_body(), max_body_length),
        kind=SpanKind.SERVER,
    )
    trace = RequestTrace(tracer, span)

    try:
        yield trace
    except Exception as exc:
        trace.status_code = 500
        tracer.record_exception(span, exc)
        raise
    finally:
        status_code = status_code_of(trace.status_code)
        tracer.end_span(
            span,
            {'http.status_code': status_code},
            StatusCode.ERROR if status_code >= 400 else StatusCode.OK,
        )
        tracer.flush()


def response_attributes(
    result: Any, max_length: int = MAX_ATTRIBUTE_LENGTH
) -> dict[str, Any]:
    """Build the ``response.*`` attributes for a controller result.

    Reads the optional ``message``, ``service_message``, ``data`` and
    ``count`` attributes of the result. Data that is not a string is
    serialized to JSON.
    """
    data = getattr(result, 'data', None)

    if data is None:
        data = ''
    elif not isinstance(data, str):
        try:
            data = json.dumps(data, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            data = str(data)

    count = getattr(result, 'count', None)

    return {
        'response.message': getattr(result, 'message', None) or '',
        'response.service_message': getattr(result, 'service_message', None) or '',
        'response.data': truncate(data, max_length),
        'response.count': str(count) if count is not None else 'null',
    }


def traced_controller_call(
    controller: Any,
    method_name: str,
    *args: Any,
    tracer: Tracer | None = None,
    **kwargs: Any,
) -> Any:
    """Call a controller method inside a ``controller-operation`` span.

    The result's ``status_code`` attribute (200 when missing) is recorded as
    ``http.status_code``; statuses of 400 and above end the span as failed.
    Response details are added when the tracer traces responses. Exceptions
    are recorded and re-raised unchanged.
    """
    method = getattr(controller, method_name)
    tracer = resolve_tracer(tracer)

    if tracer is None:
        return method(*args, **kwargs)

    span = tracer.start_span(
        'controller-operation',
        {
            'controller.name': type(controller).__name__,
            'controller.method': method_name,
        },
    )

    try:
        result = method(*args, **kwargs)
    except Exception as exc:
        tracer.record_exception(span, exc)
        tracer.end_span(
            span,
            {'controller.result': 'error', 'error.message': str(exc)},
            StatusCode.ERROR,
        )
        raise

    status_code = status_code_of(getattr(result, 'status_code', None))
    attributes = {'controller.result': 'success', 'http.status_code': status_code}

    if tracer.should_trace_response():
        attributes.update(response_attributes(result))

    tracer.end_span(
        span,
        attributes,
        StatusCode.ERROR if status_code >= 400 else StatusCode.OK,
    )
    return result


class QueryTrace:
    """Handle yielded by ``query_span``. Set ``rows_affected`` after executing."""

    def __init__(self, span: SpanRef | None):
        self.span = span
        self.rows_affected: int | None = None


def query_operation(statement: str) -> str:
    """Return the upper-cased leading keyword of a SQL statement."""
    words = statement.strip().split(None, 1)
    return words[0].upper() if words else ''


@contextmanager
def query_span(
    statement: str,
    tracer: Tracer | None = None,
    system: str = 'mysql',
) -> Iterator[QueryTrace]:
    """Record a ``database-query`` span when query tracing is enabled.

    Parameters
    ----------
    statement : str
        The SQL statement being executed.
    tracer : Tracer, optional
        Tracer to record on. Defaults to the current tracer.
    system : str, optional
        The ``db.system`` attribute. Default 'mysql'.

    Yields
    ------
    QueryTrace
        Handle used to report the number of affected rows.
    """
    tracer = resolve_tracer(tracer)

    if tracer is None or not tracer.should_trace_db_query():
        yield QueryTrace(None)
        return

    span = tracer.start_span(
        'database-query',
        {
            'db.system': system,
            'db.operation': query_operation(statement),
            'db.statement': truncate(statement),
        },
        kind=SpanKind.CLIENT,
    )
    query = QueryTrace(span)
    started = time.perf_counter()
    status = StatusCode.OK

    try:
        yield query
    except Exception as exc:
        status = StatusCode.ERROR
        tracer.record_exception(span, exc)
        raise
    finally:
        attributes = {
            'db.execution_time_ms': round((time.perf_counter() - started) * 1000, 2)
        }
        if query.rows_affected is not None:
            attributes['db.rows_affected'] = query.rows_affected
        tracer.end_span(span, attributes, status)
