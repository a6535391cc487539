"""
TraceKit Tracer.

Records a tree of timed spans for one request (or one CLI run) and ships it to
the TraceKit collector as an OTLP/JSON payload.

Usage:
    from tracekit_core.tracing import Tracer

    tracer = Tracer({'api_key': 'secret', 'service_name': 'orders'})

    root = tracer.start_trace('http-request', {'http.method': 'GET'})
    child = tracer.start_span('database-query', kind=SpanKind.CLIENT)
    tracer.end_span(child)
    tracer.end_span(root, {'http.status_code': 200})

    tracer.flush()

Every operation is fail-open: internal errors are logged and degrade to a
no-op, span-creation calls return None when the trace is not recorded.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from opentelemetry.sdk.trace.export import SpanExportResult
from opentelemetry.trace import StatusCode

from tracekit_core.models.config import TraceKitConfig
from tracekit_core.models.models import Span, SpanKind, SpanRef
from tracekit_core.tracing import otlp
from tracekit_core.tracing.ids import generate_span_id, generate_trace_id
from tracekit_core.tracing.normalizer import (
    create_event,
    format_stack_trace,
    normalize_attributes,
    now_nanos,
)
from tracekit_core.tracing.registry import (
    clear_current_instance,
    set_current_instance,
)
from tracekit_core.tracing.sampler import Sampler
from tracekit_core.tracing.transport import Transport, create_transport


def _coerce_status(status: Any) -> StatusCode:
    if status == StatusCode.ERROR:
        return StatusCode.ERROR
    if isinstance(status, str) and status.strip().upper() == 'ERROR':
        return StatusCode.ERROR
    return StatusCode.OK


def _error_code(exception: BaseException) -> Any:
    code = getattr(exception, 'code', None)
    if code is None:
        code = getattr(exception, 'errno', None)
    return code


class Tracer:
    """TraceKit span recorder and exporter.

    Parameters
    ----------
    options : dict, optional
        Explicit configuration values. They take precedence over the
        ``TRACEKIT_*`` environment variables.
    config : TraceKitConfig, optional
        A resolved configuration. When given, ``options`` is ignored.
    transport : Transport, optional
        The transport used by ``flush``. Defaults to the one selected by the
        configuration.
    logger : logging.Logger, optional
        Logger for diagnostics. Uses 'tracekit' logger if not provided.
    register : bool, optional
        Register the instance as the current tracer. Default True.
    """

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        *,
        config: TraceKitConfig | None = None,
        transport: Transport | None = None,
        logger: logging.Logger | None = None,
        register: bool = True,
    ):
        self._logger: logging.Logger = logger or logging.getLogger('tracekit')
        self._config: TraceKitConfig = config or TraceKitConfig.resolve(
            dict(options) if options else None
        )
        self._sampler = Sampler(self._config.sample_rate)
        self._transport: Transport = transport or create_transport(
            self._config, self._logger
        )
        self._spans: list[Span] = []
        self._stack: list[SpanRef] = []
        self._trace_id: str | None = None

        if register:
            set_current_instance(self)

    # -------------------------------------------------------------------------
    # Configuration accessors
    # -------------------------------------------------------------------------

    @property
    def config(self) -> TraceKitConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def spans(self) -> tuple[Span, ...]:
        """Snapshot of the recorded spans, in creation order."""
        return tuple(self._spans)

    def is_enabled(self) -> bool:
        return self._config.enabled

    def should_trace_response(self) -> bool:
        return self.is_enabled() and self._config.trace_response

    def should_trace_db_query(self) -> bool:
        return self.is_enabled() and self._config.trace_db_query

    def should_trace_request_body(self) -> bool:
        return self.is_enabled() and self._config.trace_request_body

    def get_sample_rate(self) -> float:
        return self._sampler.rate

    def get_sample_rate_percent(self) -> float:
        return self._sampler.rate_percent

    def get_trace_id(self) -> str | None:
        return self._trace_id

    def get_active_span(self) -> SpanRef | None:
        """Return the innermost open span, or None when no span is open."""
        return self._stack[-1] if self._stack else None

    def should_sample(self, force_sample: bool = False) -> bool:
        """Decide whether a new trace is recorded.

        Always False when tracing is disabled, always True when
        ``force_sample`` is set, otherwise decided by the sampling rate.
        """
        if not self.is_enabled():
            return False
        return self._sampler.should_sample(force=force_sample)

    # -------------------------------------------------------------------------
    # Span API
    # -------------------------------------------------------------------------

    def _find_span(self, ref: SpanRef | None) -> Span | None:
        if ref is None:
            return None
        for span in reversed(self._spans):
            if span.span_id == ref.span_id:
                return span
        return None

    def _open_span(
        self,
        name: str,
        attributes: Optional[Mapping[str, Any]],
        kind: SpanKind,
        trace_id: str,
        parent_span_id: str | None,
    ) -> SpanRef:
        span = Span(
            trace_id=trace_id,
            span_id=generate_span_id(),
            parent_span_id=parent_span_id,
            name=str(name),
            kind=kind,
            start_time=now_nanos(),
            attributes=normalize_attributes(attributes),
        )
        ref = span.to_ref()

        self._spans.append(span)
        self._stack.append(ref)

        return ref

    def start_trace(
        self,
        name: str,
        attributes: Optional[Mapping[str, Any]] = None,
        force_sample: bool = False,
        kind: Any = SpanKind.INTERNAL,
    ) -> SpanRef | None:
        """Open the root span of a trace.

        The tracer keeps its trace id until ``flush``; a new one is generated
        when none is set.

        Parameters
        ----------
        name : str
            Operation name of the root span.
        attributes : Mapping, optional
            Initial span attributes.
        force_sample : bool, optional
            Record the trace regardless of the sampling rate. Default False.
        kind : SpanKind, optional
            Kind of the root span. Default ``SpanKind.INTERNAL``.

        Returns
        -------
        SpanRef or None
            The root span handle, or None when the trace is not recorded.
        """
        try:
            if not self.should_sample(force_sample):
                return None

            if self._trace_id is None:
                self._trace_id = generate_trace_id()

            return self._open_span(
                name, attributes, SpanKind.coerce(kind), self._trace_id, None
            )
        except Exception as e:
            self._logger.warning(f'Failed to start trace {name}: {e}')
            return None

    def start_span(
        self,
        name: str,
        attributes: Optional[Mapping[str, Any]] = None,
        kind: Any = SpanKind.INTERNAL,
    ) -> SpanRef | None:
        """Open a child of the innermost open span.

        When no span is open this behaves like ``start_trace`` and the new
        span becomes a root, subject to sampling. Invalid kinds are recorded
        as ``SpanKind.INTERNAL``.

        Returns
        -------
        SpanRef or None
            The span handle, or None when tracing is disabled or the trace is
            not recorded.
        """
        if not self.is_enabled():
            return None

        try:
            kind = SpanKind.coerce(kind)
            parent = self.get_active_span()

            if parent is None:
                return self.start_trace(name, attributes, kind=kind)

            return self._open_span(
                name, attributes, kind, parent.trace_id, parent.span_id
            )
        except Exception as e:
            self._logger.warning(f'Failed to start span {name}: {e}')
            return None

    def end_span(
        self,
        span: SpanRef | None,
        final_attributes: Optional[Mapping[str, Any]] = None,
        status: Any = StatusCode.OK,
    ) -> None:
        """Close a span.

        Sets the end time, merges ``final_attributes`` into the span
        attributes, sets the status and removes the span from the active
        stack. A span already marked as ERROR keeps its status. Unknown and
        already ended spans are ignored.

        Parameters
        ----------
        span : SpanRef or None
            The handle returned when the span was started.
        final_attributes : Mapping, optional
            Attributes known only at the end of the operation.
        status : StatusCode, optional
            ``StatusCode.OK`` (default) or ``StatusCode.ERROR``.
        """
        if span is None:
            return

        try:
            recorded = self._find_span(span)

            if recorded is None:
                self._logger.debug(f'Ignoring end of unknown span {span.span_id}')
                return

            if recorded.is_ended:
                self._logger.debug(f'Span {recorded.name} has already ended')
                return

            recorded.end_time = max(now_nanos(), recorded.start_time)
            recorded.attributes.update(normalize_attributes(final_attributes))

            if recorded.status != StatusCode.ERROR:
                recorded.status = _coerce_status(status)

            self._pop(span)
        except Exception as e:
            self._logger.warning(f'Failed to end span: {e}')

    def _pop(self, span: SpanRef) -> None:
        for position in range(len(self._stack) - 1, -1, -1):
            if self._stack[position].span_id != span.span_id:
                continue

            if position != len(self._stack) - 1:
                self._logger.debug(
                    f'Span {span.span_id} ended before {len(self._stack) - 1 - position} nested span(s)'
                )

            del self._stack[position]
            return

    def add_event(
        self,
        span: SpanRef | None,
        name: str,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Append a timestamped event to an open span."""
        if not self.is_enabled() or span is None:
            return

        try:
            recorded = self._find_span(span)

            if recorded is None or recorded.is_ended:
                self._logger.debug(f'Ignoring event {name} for closed or unknown span')
                return

            recorded.events.append(create_event(name, attributes))
        except Exception as e:
            self._logger.warning(f'Failed to add event {name}: {e}')

    def record_exception(
        self,
        span: SpanRef | None,
        exception: BaseException,
        operation_name: str = 'exception',
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> SpanRef | None:
        """Record an exception on a span and mark it as failed.

        When ``span`` is None a root span named ``operation_name`` is created,
        bypassing sampling, and annotated with ``error.type``,
        ``error.message`` and, when the exception carries one, ``error.code``.

        Parameters
        ----------
        span : SpanRef or None
            The span the exception belongs to.
        exception : BaseException
            The exception to record.
        operation_name : str, optional
            Name of the root span created when ``span`` is None.
        attributes : Mapping, optional
            Extra attributes for the created root span.

        Returns
        -------
        SpanRef or None
            The span the exception was recorded on, or None when tracing is
            disabled.
        """
        if not self.is_enabled():
            return None

        try:
            if span is None:
                error_attributes = dict(attributes or {})
                error_attributes['error.type'] = type(exception).__name__
                error_attributes['error.message'] = str(exception)

                code = _error_code(exception)
                if code is not None:
                    error_attributes['error.code'] = code

                span = self.start_trace(
                    operation_name, error_attributes, force_sample=True
                )

            recorded = self._find_span(span)

            if recorded is None or recorded.is_ended:
                self._logger.debug('Ignoring exception for closed or unknown span')
                return span

            recorded.events.append(
                create_event(
                    'exception',
                    {
                        'exception.type': type(exception).__name__,
                        'exception.message': str(exception),
                        'exception.stacktrace': format_stack_trace(exception),
                    },
                )
            )
            recorded.status = StatusCode.ERROR

            return span
        except Exception as e:
            self._logger.warning(f'Failed to record exception: {e}')
            return span

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def build_trace_payload(self) -> dict:
        """Build the OTLP/JSON payload for the spans that have ended."""
        return otlp.build_trace_payload(self._spans, self._config.service_name)

    def send_traces(self, payload: dict) -> SpanExportResult:
        """Send a payload through the transport, never raising."""
        try:
            return self._transport.send(payload)
        except Exception as e:
            self._logger.warning(f'Failed to send traces: {e}')
            return SpanExportResult.FAILURE

    def flush(self) -> SpanExportResult | None:
        """Send the completed spans and reset the tracer.

        Nothing happens when tracing is disabled, no span was recorded or no
        span has ended yet. After sending, the recorded spans, the active
        stack and the trace id are cleared and the tracer is removed from the
        current instance registry.

        Returns
        -------
        SpanExportResult or None
            The export result, or None when nothing was sent.
        """
        if not self.is_enabled() or not self._spans or self._trace_id is None:
            self._logger.debug(
                f'Flush skipped - enabled: {"yes" if self.is_enabled() else "no"}, '
                f'spans: {len(self._spans)}, trace id: {self._trace_id}'
            )
            return None

        try:
            payload = self.build_trace_payload()

            if not payload:
                self._logger.debug('No completed spans, skipping flush')
                return None

            result = self.send_traces(payload)

            self._spans = []
            self._stack = []
            self._trace_id = None

            clear_current_instance(self)

            return result
        except Exception as e:
            self._logger.warning(f'Failed to flush traces: {e}')
            return None

    def shutdown(self) -> None:
        """Flush pending spans and release the transport."""
        self.flush()
        try:
            self._transport.shutdown()
        except Exception as e:
            self._logger.warning(f'Failed to shut down transport: {e}')
