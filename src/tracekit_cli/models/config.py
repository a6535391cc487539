import logging
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class CliConfig(BaseSettings):
    """Configuration values for the tracekit command line. All env variables must start with tracekit_cli_"""

    logging_level: int = logging.WARNING
    """The tracer logging level while running commands. Default "logging.WARNING"."""

    logging_file: Optional[str] = None
    """The log file path. Specify to save tracer logs to file. Default "None"."""

    theme: Optional[Literal['light', 'dark']] = None
    """The console theme to use. Set to 'light' for light terminals or 'dark' for dark terminals. Default None (auto-detect)."""

    model_config = SettingsConfigDict(
        env_prefix='tracekit_cli_',
        env_file='.env',
        extra='ignore',
    )
