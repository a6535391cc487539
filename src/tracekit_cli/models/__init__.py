from enum import Enum

from tracekit_cli.models.config import CliConfig as CliConfig


class OutputMode(str, Enum):
    """Valid output modes for the config and status commands."""

    TABLE = 'table'
    JSON = 'json'


class HeartbeatStatus(str, Enum):
    """Service statuses accepted by the heartbeat command."""

    HEALTHY = 'healthy'
    DEGRADED = 'degraded'
    UNHEALTHY = 'unhealthy'
