"""
Delivery of OTLP/JSON payloads to the TraceKit collector.

Transports never raise: failures are logged and reported through the returned
``SpanExportResult``.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional

import requests
from opentelemetry.sdk.trace.export import SpanExportResult

from tracekit_core.exceptions import TransportException
from tracekit_core.models.config import TraceKitConfig


class PayloadSummary(NamedTuple):
    spans: list
    span_count: int
    first_resource_span: dict


def validate_payload_structure(payload: Any) -> Optional[PayloadSummary]:
    """Check that ``resourceSpans[0].scopeSpans[0].spans`` holds at least one span.

    Returns
    -------
    PayloadSummary or None
        The spans, their count and the first resource span, or None when any
        level of the structure is missing or empty.
    """
    if not isinstance(payload, dict):
        return None

    resource_spans = payload.get('resourceSpans')
    if not isinstance(resource_spans, list) or not resource_spans:
        return None

    first_resource_span = resource_spans[0]
    if not isinstance(first_resource_span, dict):
        return None

    scope_spans = first_resource_span.get('scopeSpans')
    if not isinstance(scope_spans, list) or not scope_spans:
        return None

    first_scope_span = scope_spans[0]
    if not isinstance(first_scope_span, dict):
        return None

    spans = first_scope_span.get('spans')
    if not isinstance(spans, list) or not spans:
        return None

    return PayloadSummary(
        spans=spans, span_count=len(spans), first_resource_span=first_resource_span
    )


def extract_service_name(first_resource_span: Any) -> str:
    """Return the ``service.name`` resource attribute, or 'unknown'."""
    if not isinstance(first_resource_span, dict):
        return 'unknown'

    resource = first_resource_span.get('resource')
    attributes = resource.get('attributes') if isinstance(resource, dict) else None

    if not isinstance(attributes, list):
        return 'unknown'

    for attribute in attributes:
        if not isinstance(attribute, dict) or attribute.get('key') != 'service.name':
            continue
        value = attribute.get('value')
        string_value = value.get('stringValue') if isinstance(value, dict) else None
        return string_value if isinstance(string_value, str) else 'unknown'

    return 'unknown'


class Transport(ABC):
    """Delivers built payloads to a collector."""

    @abstractmethod
    def send(self, payload: dict) -> SpanExportResult:
        pass

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


class HttpTransport(Transport):
    """Synchronous JSON POST to the collector endpoint.

    Parameters
    ----------
    endpoint : str
        The collector URL.
    api_key : str
        Value of the ``X-API-Key`` header.
    timeout_seconds : float, optional
        Total time allowed for the response. Default 3 seconds.
    connect_timeout_seconds : float, optional
        Time allowed to establish the connection. Default 1 second.
    logger : logging.Logger, optional
        Logger for delivery diagnostics. Uses 'tracekit' logger if not provided.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        timeout_seconds: float = 3.0,
        connect_timeout_seconds: float = 1.0,
        logger: logging.Logger | None = None,
    ):
        self.endpoint = endpoint
        self._api_key = api_key
        self.timeout = (connect_timeout_seconds, timeout_seconds)
        self._logger = logger or logging.getLogger('tracekit')

    @classmethod
    def from_config(
        cls, config: TraceKitConfig, logger: logging.Logger | None = None
    ) -> HttpTransport:
        return cls(
            endpoint=config.endpoint,
            api_key=config.api_key.get_secret_value() if config.api_key else '',
            timeout_seconds=config.timeout_seconds,
            connect_timeout_seconds=config.connect_timeout_seconds,
            logger=logger,
        )

    def send(self, payload: dict) -> SpanExportResult:
        summary = validate_payload_structure(payload)

        if summary is None:
            self._logger.warning('Discarding trace payload with invalid structure')
            return SpanExportResult.FAILURE

        service_name = extract_service_name(summary.first_resource_span)

        try:
            self._post(payload)
        except TransportException as e:
            self._logger.warning(str(e))
            return SpanExportResult.FAILURE

        self._logger.debug(
            f'Sent {summary.span_count} span{"s" if summary.span_count > 1 else ""} '
            f'for {service_name} to {self.endpoint}'
        )
        return SpanExportResult.SUCCESS

    def _post(self, payload: dict) -> None:
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise TransportException(
                message=f'Payload is not serializable: {e}', endpoint=self.endpoint
            ) from e

        try:
            response = requests.post(
                self.endpoint,
                data=body,
                headers={
                    'Content-Type': 'application/json',
                    'X-API-Key': self._api_key,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportException(message=str(e), endpoint=self.endpoint) from e

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise TransportException(
                message=response.reason or str(e),
                endpoint=self.endpoint,
                status_code=response.status_code,
                details={'response': response.text[:500]} if response.text else None,
            ) from e


_SHUTDOWN = object()


class BackgroundTransport(Transport):
    """Hands payloads to a daemon thread through a bounded queue.

    ``send`` never blocks on network I/O. When the queue is full the payload
    is dropped and ``SpanExportResult.FAILURE`` is returned.

    Parameters
    ----------
    wrapped : Transport
        The transport used by the worker thread.
    max_queue_size : int, optional
        Maximum number of payloads waiting to be sent. Default 64.
    logger : logging.Logger, optional
        Logger for dropped payloads and worker errors.
    """

    def __init__(
        self,
        wrapped: Transport,
        max_queue_size: int = 64,
        logger: logging.Logger | None = None,
    ):
        self._wrapped = wrapped
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._logger = logger or logging.getLogger('tracekit')
        self._lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._closed = False

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name='tracekit-exporter', daemon=True
                )
                self._worker.start()

    def _run(self) -> None:
        while True:
            payload = self._queue.get()
            try:
                if payload is _SHUTDOWN:
                    return
                self._wrapped.send(payload)
            except Exception:
                self._logger.exception('Background trace export failed')
            finally:
                self._queue.task_done()

    def send(self, payload: dict) -> SpanExportResult:
        if self._closed:
            self._logger.debug('Exporter is shut down, dropping trace payload')
            return SpanExportResult.FAILURE

        self._ensure_worker()

        try:
            self._queue.put_nowait(payload)
        except queue.Full:
            self._logger.warning('Export queue is full, dropping trace payload')
            return SpanExportResult.FAILURE

        return SpanExportResult.SUCCESS

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        deadline = time.monotonic() + timeout_millis / 1000

        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)

        return True

    def shutdown(self, timeout_millis: int = 30000) -> None:
        if self._closed:
            return

        self._closed = True

        if self._worker is not None and self._worker.is_alive():
            try:
                self._queue.put(_SHUTDOWN, timeout=timeout_millis / 1000)
            except queue.Full:
                self._logger.warning('Export queue did not drain before shutdown')
            self._worker.join(timeout_millis / 1000)

        self._wrapped.shutdown()


def create_transport(
    config: TraceKitConfig, logger: logging.Logger | None = None
) -> Transport:
    """Create the transport selected by the configuration."""
    transport = HttpTransport.from_config(config, logger)

    if config.background_export:
        return BackgroundTransport(
            transport, max_queue_size=config.export_queue_size, logger=logger
        )

    return transport
