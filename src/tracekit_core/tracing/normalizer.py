"""Attribute normalization for spans and events."""

import io
import time
import traceback
from typing import Any, Mapping, Optional

from tracekit_core.models.models import SpanEvent


SCALAR_TYPES = (str, int, float, bool)


def _has_own_str(value: Any) -> bool:
    """Check whether the object's class defines a string conversion of its own."""
    return type(value).__str__ is not object.__str__


def normalize_value(value: Any) -> Any:
    """Normalize a single attribute value.

    Scalars are kept, ``None`` becomes an empty string, mappings and sequences
    are normalized recursively, streams become their representation and other
    objects are converted to string only when they define ``__str__``.
    """
    if isinstance(value, SCALAR_TYPES):
        return value

    if value is None:
        return ''

    if isinstance(value, Mapping):
        return {str(key): normalize_value(item) for key, item in value.items()}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_value(item) for item in value]

    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('utf-8', errors='replace')

    if isinstance(value, io.IOBase):
        return repr(value)

    if _has_own_str(value):
        try:
            return str(value)
        except Exception:
            return ''

    return ''


def normalize_attributes(attributes: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Normalize every value of an attribute mapping, stringifying its keys."""
    if not attributes:
        return {}

    if not isinstance(attributes, Mapping):
        return {}

    return {str(key): normalize_value(value) for key, value in attributes.items()}


def now_nanos() -> int:
    return time.time_ns()


def create_event(name: str, attributes: Optional[Mapping[str, Any]] = None) -> SpanEvent:
    """Create an event stamped with the current time."""
    return SpanEvent(
        name=name,
        time=now_nanos(),
        attributes=normalize_attributes(attributes),
    )


def format_stack_trace(exception: BaseException) -> str:
    """Format an exception traceback, one frame per line.

    The first line is the ``file:line`` where the exception was raised, the
    following lines list the frames from the innermost outwards as
    ``function at file:line``. Exceptions that were never raised have no
    traceback, in which case the ``Type: message`` summary is returned.
    """
    frames = traceback.extract_tb(exception.__traceback__)

    if not frames:
        return ''.join(traceback.format_exception_only(type(exception), exception)).strip()

    origin = frames[-1]
    lines = [f'{origin.filename}:{origin.lineno}']

    for frame in reversed(frames):
        lines.append(f'{frame.name} at {frame.filename}:{frame.lineno}')

    return '\n'.join(lines)
