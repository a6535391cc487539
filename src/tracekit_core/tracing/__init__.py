"""
TraceKit Tracing Module.

Records request call-trees as spans and exports them as OTLP/JSON.

Usage:
    from tracekit_core.tracing import Tracer, traced, request_span

    # One tracer per request, registered as the current tracer
    tracer = Tracer({'service_name': 'orders'})

    # Root span for the request, flushed when the block ends
    with request_span(request, tracer) as trace:
        trace.status_code = handle(request)

    # Decorator for functions called while handling the request
    @traced('load-orders')
    def load_orders(customer_id):
        ...
"""

from tracekit_core.tracing.client import Tracer
from tracekit_core.tracing.integrations import (
    QueryTrace,
    RequestTrace,
    TracedRequest,
    query_span,
    request_span,
    response_attributes,
    traced_controller_call,
)
from tracekit_core.tracing.registry import (
    clear_current_instance,
    get_current_instance,
    set_current_instance,
)
from tracekit_core.tracing.transport import (
    BackgroundTransport,
    HttpTransport,
    Transport,
)
from tracekit_core.tracing.utils import traced, traced_call

__all__ = [
    'Tracer',
    'Transport',
    'HttpTransport',
    'BackgroundTransport',
    'TracedRequest',
    'RequestTrace',
    'QueryTrace',
    'request_span',
    'query_span',
    'response_attributes',
    'traced_controller_call',
    'traced',
    'traced_call',
    'get_current_instance',
    'set_current_instance',
    'clear_current_instance',
]
