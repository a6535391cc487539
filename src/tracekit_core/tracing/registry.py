"""
Current tracer registry.

Framework layers that are not handed a tracer explicitly look it up here. The
slot is a ``ContextVar``, so every thread and asyncio task sees its own
current tracer.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tracekit_core.tracing.client import Tracer


_current_tracer: ContextVar[Optional['Tracer']] = ContextVar(
    'tracekit_current_tracer', default=None
)


def get_current_instance() -> Optional['Tracer']:
    """Return the tracer registered for the current context, if any."""
    return _current_tracer.get()


def set_current_instance(tracer: Optional['Tracer']) -> None:
    _current_tracer.set(tracer)


def clear_current_instance(tracer: Optional['Tracer'] = None) -> None:
    """Clear the current tracer.

    Parameters
    ----------
    tracer : Tracer, optional
        When given, the slot is cleared only if it still holds this tracer.
    """
    if tracer is not None and _current_tracer.get() is not tracer:
        return
    _current_tracer.set(None)
