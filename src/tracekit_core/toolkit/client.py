"""
TraceKit API client.

Account and service management calls that sit next to trace export:
registering a service and obtaining its API key, checking the integration
status, heartbeats, metrics, alerts and webhooks.

Usage:
    from tracekit_core.toolkit import ToolkitClient

    client = ToolkitClient()

    session = client.register_service('dev@example.com')
    credentials = client.verify_code(session['session_id'], '123456')

    client.send_heartbeat('healthy', {'memory_usage': 0.42})

Unlike the tracer, the client raises ``ToolkitException`` when a call fails.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote

import requests

from tracekit_core.exceptions import ToolkitException
from tracekit_core.models.config import TraceKitConfig

HEARTBEAT_TIMEOUT = (1.0, 3.0)


class ToolkitClient:
    """Client for the TraceKit management API.

    Parameters
    ----------
    api_key : str, optional
        The API key sent in the ``X-API-Key`` header. Defaults to the
        configured ``TRACEKIT_API_KEY``.
    service_name : str, optional
        The service the calls refer to. Defaults to the configured
        ``TRACEKIT_SERVICE_NAME``.
    base_url : str, optional
        The API root. Defaults to the configured ``TRACEKIT_BASE_URL``.
    config : TraceKitConfig, optional
        A resolved configuration. Resolved from the environment when omitted.
    timeout_seconds : float, optional
        Total time allowed for each call. Default 10 seconds.
    logger : logging.Logger, optional
        Logger for diagnostics. Uses 'tracekit' logger if not provided.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        service_name: Optional[str] = None,
        base_url: Optional[str] = None,
        *,
        config: TraceKitConfig | None = None,
        timeout_seconds: float = 10.0,
        logger: logging.Logger | None = None,
    ):
        config = config or TraceKitConfig.resolve()

        if api_key is None and config.api_key is not None:
            api_key = config.api_key.get_secret_value()

        self.api_key: str = api_key or ''
        self.service_name: str = service_name or config.service_name
        self.base_url: str = (base_url or config.base_url).rstrip('/')
        self.timeout = (config.connect_timeout_seconds, timeout_seconds)
        self._logger = logger or logging.getLogger('tracekit')

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_service(
        self,
        email: str,
        organization_name: Optional[str] = None,
        source: str = 'gemvc',
        source_metadata: Optional[Mapping[str, Any]] = None,
    ) -> dict:
        """Start the registration of the service.

        TraceKit sends a verification code to ``email``. Pass it, together
        with the returned ``session_id``, to ``verify_code``.

        Parameters
        ----------
        email : str
            Address receiving the verification code.
        organization_name : str, optional
            Organization to create. Generated by TraceKit when omitted.
        source : str, optional
            Integration partner code. Default 'gemvc'.
        source_metadata : Mapping, optional
            Details about the integration, such as version or environment.

        Returns
        -------
        dict
            The TraceKit response, including the ``session_id``.
        """
        payload: dict[str, Any] = {
            'email': email,
            'service_name': self.service_name,
            'source': source,
        }

        if organization_name is not None:
            payload['organization_name'] = organization_name

        if source_metadata:
            payload['source_metadata'] = dict(source_metadata)

        return self._post(
            'register', '/v1/integrate/register', payload, authenticated=False
        )

    def verify_code(self, session_id: str, code: str) -> dict:
        """Complete the registration and obtain the API key.

        The returned ``api_key``, when present, replaces the client's key.
        """
        data = self._post(
            'verify',
            '/v1/integrate/verify',
            {'session_id': session_id, 'code': code},
            authenticated=False,
        )

        if data.get('api_key'):
            self.api_key = str(data['api_key'])

        return data

    def get_status(self) -> dict:
        """Return the integration status of the API key."""
        return self._get('status', '/v1/integrate/status')

    # -------------------------------------------------------------------------
    # Health checks
    # -------------------------------------------------------------------------

    def send_heartbeat(
        self, status: str = 'healthy', metadata: Optional[Mapping[str, Any]] = None
    ) -> dict:
        """Report the service status: 'healthy', 'degraded' or 'unhealthy'.

        Heartbeats use short timeouts (1 second to connect, 3 in total).
        """
        payload: dict[str, Any] = {'service_name': self.service_name, 'status': status}

        if metadata:
            payload['metadata'] = dict(metadata)

        return self._post(
            'heartbeat', '/v1/health/heartbeat', payload, timeout=HEARTBEAT_TIMEOUT
        )

    def list_health_checks(self) -> dict:
        return self._get('health checks', '/api/health-checks')

    # -------------------------------------------------------------------------
    # Metrics and alerts
    # -------------------------------------------------------------------------

    def get_metrics(self, window: str = '15m') -> dict:
        """Return the service metrics over a window of 5m, 15m, 1h, 6h or 24h."""
        return self._get(
            'metrics',
            f'/api/metrics/services/{quote(self.service_name, safe="")}',
            params={'window': window},
        )

    def get_alerts_summary(self) -> dict:
        return self._get('alerts summary', '/v1/alerts/summary')

    def get_active_alerts(self, limit: int = 50) -> dict:
        return self._get('active alerts', '/v1/alerts/active', params={'limit': limit})

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    def create_webhook(
        self, name: str, url: str, events: Iterable[str], enabled: bool = True
    ) -> dict:
        return self._post(
            'webhook creation',
            '/v1/webhooks',
            {'name': name, 'url': url, 'events': list(events), 'enabled': enabled},
        )

    def list_webhooks(self) -> dict:
        return self._get('webhooks', '/v1/webhooks')

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _headers(self, operation: str, authenticated: bool) -> dict:
        headers = {'Accept': 'application/json'}

        if authenticated:
            if not self.api_key:
                raise ToolkitException(
                    message='API key not set', operation=operation, status_code=401
                )
            headers['X-API-Key'] = self.api_key

        return headers

    def _post(
        self,
        operation: str,
        path: str,
        payload: dict,
        authenticated: bool = True,
        timeout: Any = None,
    ) -> dict:
        headers = self._headers(operation, authenticated)
        url = self.base_url + path

        try:
            response = requests.post(
                url, json=payload, headers=headers, timeout=timeout or self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise ToolkitException(message=str(e), operation=operation) from e

        return self._parse(operation, response)

    def _get(
        self,
        operation: str,
        path: str,
        params: Optional[dict] = None,
    ) -> dict:
        headers = self._headers(operation, True)
        url = self.base_url + path

        try:
            response = requests.get(
                url, params=params, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise ToolkitException(message=str(e), operation=operation) from e

        return self._parse(operation, response)

    def _parse(self, operation: str, response: requests.Response) -> dict:
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise ToolkitException(
                message=_error_message(response) or response.reason or str(e),
                operation=operation,
                status_code=response.status_code,
                details={'response': response.text[:500]} if response.text else None,
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise ToolkitException(
                message='Invalid response from TraceKit',
                operation=operation,
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict) or not data:
            raise ToolkitException(
                message='Invalid response from TraceKit',
                operation=operation,
                status_code=response.status_code,
            )

        self._logger.debug(f'TraceKit {operation} succeeded')
        return data


def _error_message(response: requests.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None

    if isinstance(data, dict):
        for key in ('error', 'message'):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]

    return None
