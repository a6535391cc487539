"""
OTLP/JSON payload construction.

Spans are converted from their dumped dictionary form so the builders stay
tolerant of partially filled records: missing fields fall back to OTLP-safe
defaults instead of failing the whole payload.
"""

from importlib.metadata import PackageNotFoundError, version as metadata_version
from typing import Any, Iterable, Mapping, Optional

from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.util.instrumentation import InstrumentationScope
from opentelemetry.trace import StatusCode

from tracekit_core.models.models import Span, SpanKind


STATUS_CODE_OK = 'STATUS_CODE_OK'
STATUS_CODE_ERROR = 'STATUS_CODE_ERROR'

DEFAULT_ERROR_MESSAGE = 'Error'
DEFAULT_EVENT_NAME = 'event'


def _package_version() -> str:
    try:
        return metadata_version('tracekit')
    except PackageNotFoundError:
        return '0.0.0'


SCOPE = InstrumentationScope('tracekit', _package_version())


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _nanos(value: Any) -> str:
    return str(value) if _is_integer(value) else '0'


def build_otlp_attribute(key: Any, value: Any) -> dict:
    """Build an OTLP key/value pair carrying a string value.

    Strings are kept, integers and floats are stringified and every other
    value (booleans, None, containers) is blanked.
    """
    if isinstance(value, str):
        string_value = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        string_value = str(value)
    else:
        string_value = ''

    return {'key': str(key), 'value': {'stringValue': string_value}}


def build_otlp_attributes(attributes: Any) -> list[dict]:
    if not isinstance(attributes, Mapping):
        return []
    return [build_otlp_attribute(key, value) for key, value in attributes.items()]


def build_otlp_event(event: Any) -> dict:
    """Build an OTLP event from an event dictionary.

    A missing or non-string name becomes ``'event'``, a missing or non-integer
    time becomes ``'0'`` and non-mapping attributes become an empty list.
    """
    if not isinstance(event, Mapping):
        event = {}

    name = event.get('name')

    return {
        'name': name if isinstance(name, str) else DEFAULT_EVENT_NAME,
        'timeUnixNano': _nanos(event.get('time')),
        'attributes': build_otlp_attributes(event.get('attributes')),
    }


def _status_of(span: Mapping) -> dict:
    status = span.get('status')
    attributes = span.get('attributes')

    if status in (StatusCode.ERROR, 'ERROR'):
        message = None
        if isinstance(attributes, Mapping):
            message = attributes.get('error.message')
        return {
            'code': STATUS_CODE_ERROR,
            'message': str(message) if message not in (None, '') else DEFAULT_ERROR_MESSAGE,
        }

    return {'code': STATUS_CODE_OK, 'message': ''}


def build_otlp_span(span: Mapping) -> dict:
    """Convert a dumped span into its OTLP/JSON record.

    Parameters
    ----------
    span : Mapping
        A span as produced by ``Span.model_dump()``.

    Returns
    -------
    dict
        The OTLP span. ``parentSpanId`` is omitted for root spans.
    """
    kind = span.get('kind')
    events = span.get('events')

    record = {
        'traceId': str(span.get('trace_id') or ''),
        'spanId': str(span.get('span_id') or ''),
        'name': str(span.get('name') or ''),
        'kind': int(kind) if _is_integer(kind) else int(SpanKind.INTERNAL),
        'startTimeUnixNano': _nanos(span.get('start_time')),
        'endTimeUnixNano': _nanos(span.get('end_time')),
        'attributes': build_otlp_attributes(span.get('attributes')),
        'events': [build_otlp_event(event) for event in events]
        if isinstance(events, list)
        else [],
        'status': _status_of(span),
    }

    parent_span_id = span.get('parent_span_id')
    if parent_span_id is not None:
        record['parentSpanId'] = str(parent_span_id)

    return record


def build_resource(service_name: str) -> dict:
    resource = Resource({SERVICE_NAME: service_name})
    return {'attributes': build_otlp_attributes(resource.attributes)}


def build_trace_payload(spans: Iterable[Span], service_name: str) -> dict:
    """Build the OTLP/JSON payload for the completed spans.

    Parameters
    ----------
    spans : Iterable[Span]
        Recorded spans. Spans that have not ended are skipped.
    service_name : str
        Value of the ``service.name`` resource attribute.

    Returns
    -------
    dict
        The payload, or an empty dict when no span has ended.
    """
    otlp_spans = [
        build_otlp_span(span.model_dump()) for span in spans if span.is_ended
    ]

    if not otlp_spans:
        return {}

    return {
        'resourceSpans': [
            {
                'resource': build_resource(service_name),
                'scopeSpans': [
                    {
                        'scope': {'name': SCOPE.name, 'version': SCOPE.version},
                        'spans': otlp_spans,
                    }
                ],
            }
        ]
    }
