import pytest
from opentelemetry import trace
from opentelemetry.trace import StatusCode

from tracekit_core.models.models import Span, SpanEvent, SpanKind, SpanRef


class TestSpanKind:
    def test_values_follow_otlp_numbering(self):
        assert SpanKind.UNSPECIFIED == 0
        assert SpanKind.INTERNAL == 1
        assert SpanKind.SERVER == 2
        assert SpanKind.CLIENT == 3
        assert SpanKind.PRODUCER == 4
        assert SpanKind.CONSUMER == 5

    @pytest.mark.parametrize(
        'value,expected',
        [
            (SpanKind.CLIENT, SpanKind.CLIENT),
            (2, SpanKind.SERVER),
            (0, SpanKind.UNSPECIFIED),
            ('consumer', SpanKind.CONSUMER),
            (trace.SpanKind.SERVER, SpanKind.SERVER),
            (trace.SpanKind.INTERNAL, SpanKind.INTERNAL),
            (99, SpanKind.INTERNAL),
            (-1, SpanKind.INTERNAL),
            ('bogus', SpanKind.INTERNAL),
            (None, SpanKind.INTERNAL),
            (True, SpanKind.INTERNAL),
            (2.0, SpanKind.INTERNAL),
        ],
    )
    def test_coerce(self, value, expected):
        assert SpanKind.coerce(value) is expected


class TestSpan:
    def test_open_span_has_no_duration(self):
        span = Span(trace_id='a' * 32, span_id='b' * 16, name='op', start_time=100)

        assert span.is_ended is False
        assert span.duration is None
        assert span.status == StatusCode.OK
        assert span.events == []

    def test_duration_is_computed_from_end_time(self):
        span = Span(trace_id='a' * 32, span_id='b' * 16, name='op', start_time=100)

        span.end_time = 350

        assert span.is_ended is True
        assert span.duration == 250
        assert span.model_dump()['duration'] == 250

    def test_to_ref(self):
        span = Span(trace_id='a' * 32, span_id='b' * 16, name='op', start_time=100)

        assert span.to_ref() == SpanRef(span_id='b' * 16, trace_id='a' * 32, start_time=100)

    def test_ref_is_immutable(self):
        ref = SpanRef(span_id='b' * 16, trace_id='a' * 32, start_time=100)

        with pytest.raises(Exception):
            ref.span_id = 'c' * 16

    def test_event_defaults(self):
        event = SpanEvent(name='cache-miss', time=5)

        assert event.attributes == {}
