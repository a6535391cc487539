from typing import Any, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


TRUTHY_FLAGS = ('1', 'true')
FALSY_FLAGS = ('0', 'false')

FLAG_FIELDS = (
    'enabled',
    'trace_response',
    'trace_db_query',
    'trace_request_body',
    'background_export',
)


def parse_flag(value: Any) -> Any:
    """Interpret a boolean-like configuration value.

    Native booleans are returned as is. Strings are compared case-insensitively:
    ``"1"`` and ``"true"`` are true, ``"0"`` and ``"false"`` are false and any
    other non-empty string is true. Empty strings and ``None`` are returned as
    ``None`` so the field default applies.
    """
    if value is None or isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    text = str(value).strip().lower()

    if text == '':
        return None
    if text in TRUTHY_FLAGS:
        return True
    if text in FALSY_FLAGS:
        return False

    return True


def _is_unset(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def parse_sample_rate(value: Any) -> float:
    """Parse a sampling rate, falling back to 1.0 and clamping to [0, 1]."""
    if isinstance(value, bool):
        return 1.0

    try:
        rate = float(value)
    except (TypeError, ValueError):
        return 1.0

    if rate != rate:  # NaN
        return 1.0

    return max(0.0, min(1.0, rate))


class TraceKitConfig(BaseSettings):
    """Configuration values for the TraceKit tracer. All env variables must start with tracekit_"""

    api_key: Optional[SecretStr] = Field(exclude=True, default=None)
    """The TraceKit API key, sent in the X-API-Key header. Tracing is disabled when empty."""

    service_name: str = 'gemvc-app'
    """The service name reported as the `service.name` resource attribute. Default 'gemvc-app'."""

    endpoint: str = 'https://app.tracekit.dev/v1/traces'
    """The collector endpoint receiving OTLP JSON payloads."""

    base_url: str = 'https://app.tracekit.dev'
    """The TraceKit API root used for registration, status and heartbeats."""

    enabled: bool = True
    """Enable tracing. Forced to False when no api key is configured. Default True."""

    sample_rate: float = 1.0
    """The fraction of traces to record, between 0.0 and 1.0. Default 1.0."""

    trace_response: bool = False
    """Attach response payload details to controller spans. Default False."""

    trace_db_query: bool = False
    """Record a span for each database query. Default False."""

    trace_request_body: bool = False
    """Attach the (truncated) request body to the request span. Default False."""

    trace_response_body: Optional[bool] = Field(
        default=None,
        exclude=True,
        validation_alias='tracekit_trace_response_body',
    )
    """Legacy name of `trace_request_body`, read from TRACEKIT_TRACE_RESPONSE_BODY."""

    timeout_seconds: float = 3.0
    """The total timeout for sending a payload. Default 3 seconds."""

    connect_timeout_seconds: float = 1.0
    """The connection timeout for sending a payload. Default 1 second."""

    background_export: bool = False
    """Send payloads from a background thread instead of the caller's. Default False."""

    export_queue_size: int = 64
    """Maximum number of payloads waiting for the background exporter. Default 64."""

    model_config = SettingsConfigDict(
        env_prefix='tracekit_',
        env_file='.env',
        extra='ignore',
        frozen=True,
        populate_by_name=True,
    )

    @model_validator(mode='before')
    @classmethod
    def resolve_dependent_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)

        # Empty environment values count as unset for every flag
        for name in FLAG_FIELDS:
            if name in data and parse_flag(data[name]) is None:
                del data[name]

        legacy = None
        for key in ('trace_response_body', 'tracekit_trace_response_body'):
            if key in data:
                legacy = parse_flag(data[key])
                break

        if 'trace_request_body' not in data and legacy is not None:
            data['trace_request_body'] = legacy

        api_key = data.get('api_key')
        if isinstance(api_key, SecretStr):
            api_key = api_key.get_secret_value()
        if api_key is None or str(api_key).strip() == '':
            data['api_key'] = None
            data['enabled'] = False

        return data

    @field_validator(*FLAG_FIELDS, 'trace_response_body', mode='before')
    @classmethod
    def validate_flag(cls, value: Any) -> Any:
        return parse_flag(value)

    @field_validator('sample_rate', mode='before')
    @classmethod
    def validate_sample_rate(cls, value: Any) -> float:
        return parse_sample_rate(value)

    @field_validator('export_queue_size', mode='before')
    @classmethod
    def validate_queue_size(cls, value: Any) -> int:
        try:
            size = int(value)
        except (TypeError, ValueError):
            return 64
        return max(1, size)

    @classmethod
    def resolve(cls, options: Optional[dict] = None) -> 'TraceKitConfig':
        """Build the configuration from explicit options and the environment.

        Explicit options take precedence over ``TRACEKIT_*`` environment
        variables (and the ``.env`` file), which take precedence over defaults.
        Options set to ``None`` or to an empty string are treated as absent,
        so the environment value applies.

        Parameters
        ----------
        options : dict, optional
            Explicit configuration values keyed by field name.

        Returns
        -------
        TraceKitConfig
            The resolved, immutable configuration.
        """
        explicit = {
            key: value
            for key, value in (options or {}).items()
            if not _is_unset(value)
        }
        return cls(**explicit)

    def masked_api_key(self) -> str:
        """Return the api key with all but its last four characters hidden."""
        if self.api_key is None:
            return ''
        secret = self.api_key.get_secret_value()
        if len(secret) <= 4:
            return '*' * len(secret)
        return '*' * (len(secret) - 4) + secret[-4:]
