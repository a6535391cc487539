import json
from unittest.mock import patch

import pytest
import requests

from tracekit_core.exceptions import ToolkitException
from tracekit_core.models.config import TraceKitConfig
from tracekit_core.toolkit import ToolkitClient


def make_response(status_code=200, body=None, reason='OK'):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.encoding = 'utf-8'
    response.url = 'https://tracekit.test'
    if body is not None:
        response._content = (body if isinstance(body, str) else json.dumps(body)).encode()
    else:
        response._content = b''
    return response


@pytest.fixture
def config():
    return TraceKitConfig.resolve(
        {
            'api_key': 'tk_secret',
            'service_name': 'orders',
            'base_url': 'https://tracekit.test/',
        }
    )


@pytest.fixture
def client(config, null_logger):
    return ToolkitClient(config=config, logger=null_logger)


@pytest.fixture
def mock_post():
    with patch('tracekit_core.toolkit.client.requests.post') as mock:
        mock.return_value = make_response(body={'ok': True})
        yield mock


@pytest.fixture
def mock_get():
    with patch('tracekit_core.toolkit.client.requests.get') as mock:
        mock.return_value = make_response(body={'ok': True})
        yield mock


class TestClientSetup:
    def test_values_from_config(self, client):
        assert client.api_key == 'tk_secret'
        assert client.service_name == 'orders'
        assert client.base_url == 'https://tracekit.test'

    def test_explicit_values_beat_config(self, config):
        client = ToolkitClient('other', 'billing', 'https://eu.tracekit.test', config=config)

        assert client.api_key == 'other'
        assert client.service_name == 'billing'
        assert client.base_url == 'https://eu.tracekit.test'

    def test_values_from_environment(self, monkeypatch):
        monkeypatch.setenv('TRACEKIT_API_KEY', 'env-key')
        monkeypatch.setenv('TRACEKIT_BASE_URL', 'https://env.tracekit.test')

        client = ToolkitClient()

        assert client.api_key == 'env-key'
        assert client.base_url == 'https://env.tracekit.test'
        assert client.service_name == 'gemvc-app'

    def test_default_base_url(self):
        assert ToolkitClient().base_url == 'https://app.tracekit.dev'


class TestRegistration:
    def test_register_service(self, client, mock_post):
        mock_post.return_value = make_response(body={'session_id': 'sess_1'})

        data = client.register_service(
            'dev@example.com',
            organization_name='Acme',
            source_metadata={'version': '1.0', 'environment': 'production'},
        )

        assert data == {'session_id': 'sess_1'}
        assert mock_post.call_args.args[0] == 'https://tracekit.test/v1/integrate/register'
        assert mock_post.call_args.kwargs['json'] == {
            'email': 'dev@example.com',
            'service_name': 'orders',
            'source': 'gemvc',
            'organization_name': 'Acme',
            'source_metadata': {'version': '1.0', 'environment': 'production'},
        }
        assert 'X-API-Key' not in mock_post.call_args.kwargs['headers']

    def test_register_service_without_optional_values(self, client, mock_post):
        client.register_service('dev@example.com', source='python')

        payload = mock_post.call_args.kwargs['json']
        assert payload == {
            'email': 'dev@example.com',
            'service_name': 'orders',
            'source': 'python',
        }

    def test_register_does_not_need_api_key(self, config, mock_post):
        client = ToolkitClient(api_key='', config=config)

        client.register_service('dev@example.com')

        mock_post.assert_called_once()

    def test_verify_code_stores_api_key(self, config, mock_post):
        client = ToolkitClient(api_key='', config=config)
        mock_post.return_value = make_response(body={'api_key': 'tk_new', 'service': 'orders'})

        data = client.verify_code('sess_1', '123456')

        assert data['api_key'] == 'tk_new'
        assert client.api_key == 'tk_new'
        assert mock_post.call_args.args[0] == 'https://tracekit.test/v1/integrate/verify'
        assert mock_post.call_args.kwargs['json'] == {'session_id': 'sess_1', 'code': '123456'}

    def test_verify_code_without_api_key_in_response(self, client, mock_post):
        mock_post.return_value = make_response(body={'verified': False})

        client.verify_code('sess_1', '000000')

        assert client.api_key == 'tk_secret'


class TestAuthenticatedCalls:
    def test_get_status(self, client, mock_get):
        mock_get.return_value = make_response(body={'status': 'connected'})

        assert client.get_status() == {'status': 'connected'}
        assert mock_get.call_args.args[0] == 'https://tracekit.test/v1/integrate/status'
        assert mock_get.call_args.kwargs['headers']['X-API-Key'] == 'tk_secret'
        assert mock_get.call_args.kwargs['timeout'] == (1.0, 10.0)

    def test_send_heartbeat(self, client, mock_post):
        client.send_heartbeat('degraded', {'memory_usage': 0.9})

        assert mock_post.call_args.args[0] == 'https://tracekit.test/v1/health/heartbeat'
        assert mock_post.call_args.kwargs['json'] == {
            'service_name': 'orders',
            'status': 'degraded',
            'metadata': {'memory_usage': 0.9},
        }
        assert mock_post.call_args.kwargs['timeout'] == (1.0, 3.0)
        assert mock_post.call_args.kwargs['headers']['X-API-Key'] == 'tk_secret'

    def test_send_heartbeat_defaults(self, client, mock_post):
        client.send_heartbeat()

        assert mock_post.call_args.kwargs['json'] == {
            'service_name': 'orders',
            'status': 'healthy',
        }

    def test_get_metrics_quotes_service_name(self, config, mock_get):
        client = ToolkitClient(service_name='orders api', config=config)

        client.get_metrics('1h')

        assert (
            mock_get.call_args.args[0]
            == 'https://tracekit.test/api/metrics/services/orders%20api'
        )
        assert mock_get.call_args.kwargs['params'] == {'window': '1h'}

    def test_get_active_alerts(self, client, mock_get):
        client.get_active_alerts(limit=10)

        assert mock_get.call_args.args[0] == 'https://tracekit.test/v1/alerts/active'
        assert mock_get.call_args.kwargs['params'] == {'limit': 10}

    @pytest.mark.parametrize(
        'method,path',
        [
            ('list_health_checks', '/api/health-checks'),
            ('get_alerts_summary', '/v1/alerts/summary'),
            ('list_webhooks', '/v1/webhooks'),
        ],
    )
    def test_listing_endpoints(self, client, mock_get, method, path):
        getattr(client, method)()

        assert mock_get.call_args.args[0] == 'https://tracekit.test' + path

    def test_create_webhook(self, client, mock_post):
        client.create_webhook('alerts', 'https://hooks.test', ('alert.fired',), enabled=False)

        assert mock_post.call_args.args[0] == 'https://tracekit.test/v1/webhooks'
        assert mock_post.call_args.kwargs['json'] == {
            'name': 'alerts',
            'url': 'https://hooks.test',
            'events': ['alert.fired'],
            'enabled': False,
        }

    @pytest.mark.parametrize(
        'call',
        [
            lambda client: client.get_status(),
            lambda client: client.send_heartbeat(),
            lambda client: client.get_metrics(),
            lambda client: client.get_active_alerts(),
        ],
    )
    def test_missing_api_key(self, config, mock_get, mock_post, call):
        client = ToolkitClient(api_key='', config=config)

        with pytest.raises(ToolkitException) as exc_info:
            call(client)

        assert exc_info.value.status_code == 401
        assert exc_info.value.is_unauthorized
        assert 'API key not set' in str(exc_info.value)
        mock_get.assert_not_called()
        mock_post.assert_not_called()


class TestErrors:
    def test_http_error_uses_response_message(self, client, mock_get):
        mock_get.return_value = make_response(
            403, body={'error': 'invalid api key'}, reason='Forbidden'
        )

        with pytest.raises(ToolkitException) as exc_info:
            client.get_status()

        error = exc_info.value
        assert error.status_code == 403
        assert error.is_unauthorized
        assert error.message == 'invalid api key'
        assert str(error).startswith('TraceKit status failed (HTTP 403): invalid api key')

    def test_http_error_without_json_body(self, client, mock_post):
        mock_post.return_value = make_response(502, body='bad gateway', reason='Bad Gateway')

        with pytest.raises(ToolkitException) as exc_info:
            client.send_heartbeat()

        assert exc_info.value.message == 'Bad Gateway'
        assert exc_info.value.details == {'response': 'bad gateway'}

    def test_network_error(self, client, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('refused')

        with pytest.raises(ToolkitException) as exc_info:
            client.register_service('dev@example.com')

        assert exc_info.value.operation == 'register'
        assert exc_info.value.status_code is None
        assert 'refused' in str(exc_info.value)

    @pytest.mark.parametrize('body', ['not json', '[1, 2]', '{}', 'null'])
    def test_invalid_response_body(self, client, mock_get, body):
        mock_get.return_value = make_response(body=body)

        with pytest.raises(ToolkitException) as exc_info:
            client.get_status()

        assert exc_info.value.message == 'Invalid response from TraceKit'
