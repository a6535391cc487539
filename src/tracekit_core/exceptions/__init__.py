from tracekit_core.exceptions.transport_exception import (
    TransportException as TransportException,
)
from tracekit_core.exceptions.toolkit_exception import (
    ToolkitException as ToolkitException,
)
