"""Demo trace used to check connectivity with the TraceKit collector."""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from opentelemetry.sdk.trace.export import SpanExportResult
from opentelemetry.trace import StatusCode

from tracekit_core.models.models import SpanKind
from tracekit_core.tracing.client import Tracer


class DemoFailure(Exception):
    """Raised inside the demo trace to exercise exception recording."""

    code = 422


@dataclass
class DemoTraceResult:
    trace_id: Optional[str]
    spans_created: int
    export_result: Optional[SpanExportResult]

    @property
    def sent(self) -> bool:
        return self.export_result == SpanExportResult.SUCCESS


def record_demo_trace(
    tracer: Tracer,
    fail: bool = False,
    sleep: Optional[Callable[[float], None]] = None,
) -> DemoTraceResult:
    """Record and flush a small request trace.

    The trace has an ``http-request`` root with ``database-query``,
    ``http-client-call`` and ``data-processing`` children. With ``fail`` set
    the client call and the processing step fail and the exception is recorded
    on both the processing span and the root.

    Parameters
    ----------
    tracer : Tracer
        The tracer to record on. The demo trace is always sampled.
    fail : bool, optional
        Record a failing request instead of a successful one. Default False.
    sleep : Callable, optional
        Used to give the spans a visible duration. Defaults to ``time.sleep``.

    Returns
    -------
    DemoTraceResult
        The trace id, the number of spans and the export result.
    """
    sleep = sleep or time.sleep

    root = tracer.start_trace(
        'http-request',
        {
            'http.method': 'GET',
            'http.url': '/tracekit/test',
            'http.user_agent': 'tracekit-cli',
            'http.route': 'tracekit/test',
        },
        force_sample=True,
        kind=SpanKind.SERVER,
    )

    if root is None:
        return DemoTraceResult(trace_id=None, spans_created=0, export_result=None)

    db_span = tracer.start_span(
        'database-query',
        {'db.system': 'mysql', 'db.operation': 'SELECT', 'db.table': 'users'},
        kind=SpanKind.CLIENT,
    )
    sleep(0.05 if not fail else 0.03)
    tracer.end_span(db_span, {'db.rows_affected': 5})

    api_span = tracer.start_span(
        'http-client-call',
        {'http.url': 'https://api.example.com/data', 'http.method': 'GET'},
        kind=SpanKind.CLIENT,
    )
    sleep(0.03 if not fail else 0.02)

    if fail:
        tracer.end_span(
            api_span,
            {'http.status_code': 500, 'error': 'Connection timeout'},
            StatusCode.ERROR,
        )
    else:
        tracer.end_span(api_span, {'http.status_code': 200, 'response.size': 1024})

    process_span = tracer.start_span(
        'data-processing', {'operation': 'transform', 'items_count': 5}
    )

    try:
        sleep(0.02 if not fail else 0.01)
        if fail:
            raise DemoFailure('Processing failed: Invalid data format')
        tracer.end_span(process_span, {'processed_items': 5})
        tracer.end_span(root, {'http.status_code': 200})
    except DemoFailure as e:
        tracer.record_exception(process_span, e)
        tracer.end_span(process_span, {'error_code': e.code}, StatusCode.ERROR)
        tracer.record_exception(root, e)
        tracer.end_span(
            root,
            {
                'http.status_code': 500,
                'error_type': type(e).__name__,
                'error_code': e.code,
            },
            StatusCode.ERROR,
        )

    trace_id = tracer.get_trace_id()
    spans_created = len(tracer.spans)
    export_result = tracer.flush()

    return DemoTraceResult(
        trace_id=trace_id, spans_created=spans_created, export_result=export_result
    )
