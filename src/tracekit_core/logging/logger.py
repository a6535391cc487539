import logging
import sys
from typing import Optional, TextIO

DEFAULT_LOGGER_NAME = 'tracekit'

DEFAULT_LOG_FORMAT = '[%(asctime)s] %(name)s - %(levelname)s - %(message)s'


def create_isolated_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: int = logging.WARNING,
    log_format: Optional[str] = None,
    propagate: bool = False,
    add_console_handler: bool = True,
    stream: Optional[TextIO] = None,
    file_path: Optional[str] = None,
) -> logging.Logger:
    """
    Create a tracer logger that doesn't interfere with the application's loggers.

    Args:
        name: Logger name (default: 'tracekit')
        level: Logging level (default: logging.WARNING)
        log_format: Custom log format string
        propagate: Whether to propagate to parent loggers (default: False)
        add_console_handler: Write records to a stream (default: True)
        stream: The stream for the console handler (default: sys.stderr)
        file_path: Also write records to this file, if given

    Returns:
        Configured logger instance
    """

    logger = logging.getLogger(name)
    logger.propagate = propagate
    logger.setLevel(level)

    # Reconfiguring replaces the previous handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format or DEFAULT_LOG_FORMAT)

    handlers: list[logging.Handler] = []

    if add_console_handler:
        handlers.append(logging.StreamHandler(stream or sys.stderr))

    if file_path is not None:
        handlers.append(logging.FileHandler(file_path))

    if not handlers:
        handlers.append(logging.NullHandler())

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def create_null_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Create a logger that discards every record.

    Args:
        name: Logger name (default: 'tracekit')

    Returns:
        Configured logger instance
    """

    return create_isolated_logger(
        name=name, level=logging.CRITICAL, add_console_handler=False
    )
