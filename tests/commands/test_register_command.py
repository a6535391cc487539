"""Test suite for the register and verify commands."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import requests
from typer.testing import CliRunner
from click.utils import strip_ansi

from tracekit_cli.commands.register import app
from tracekit_cli.services.env_service import read_env_values


def json_response(body, status_code=200, reason='OK'):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.encoding = 'utf-8'
    response._content = json.dumps(body).encode()
    return response


@pytest.fixture
def runner():
    """Fixture providing a CLI runner."""
    return CliRunner()


@pytest.fixture
def mock_post():
    with patch('tracekit_core.toolkit.client.requests.post') as mock:
        yield mock


def test_register_sends_registration(runner, mock_post, monkeypatch):
    monkeypatch.setenv('TRACEKIT_SERVICE_NAME', 'orders')
    monkeypatch.setenv('TRACEKIT_BASE_URL', 'https://tracekit.test')
    mock_post.return_value = json_response({'session_id': 'sess_42'})

    result = runner.invoke(
        app,
        ['register', '--email', 'dev@example.com', '--organization', 'Acme'],
    )

    assert result.exit_code == 0

    cleaned_output = strip_ansi(result.stdout)
    assert 'Verification code sent to dev@example.com' in cleaned_output
    assert 'tracekit verify sess_42 CODE' in cleaned_output

    assert mock_post.call_args.args[0] == 'https://tracekit.test/v1/integrate/register'
    payload = mock_post.call_args.kwargs['json']
    assert payload['email'] == 'dev@example.com'
    assert payload['service_name'] == 'orders'
    assert payload['organization_name'] == 'Acme'
    assert payload['source'] == 'gemvc'
    assert payload['source_metadata']['environment'] == 'development'


def test_register_prompts_for_email(runner, mock_post):
    mock_post.return_value = json_response({'session_id': 'sess_1'})

    result = runner.invoke(app, ['register'], input='dev@example.com\n')

    assert result.exit_code == 0
    assert mock_post.call_args.kwargs['json']['email'] == 'dev@example.com'


def test_register_reports_failure(runner, mock_post):
    mock_post.side_effect = requests.exceptions.ConnectionError('refused')

    result = runner.invoke(app, ['register', '--email', 'dev@example.com'])

    assert result.exit_code == 1
    assert 'TraceKit register failed' in strip_ansi(result.stdout)


def test_verify_saves_api_key(runner, mock_post):
    mock_post.return_value = json_response({'api_key': 'tk_live_9876'})

    result = runner.invoke(app, ['verify', 'sess_42', '123456'])

    assert result.exit_code == 0
    assert mock_post.call_args.kwargs['json'] == {
        'session_id': 'sess_42',
        'code': '123456',
    }

    values = read_env_values((Path.cwd() / '.env').read_text())
    assert values['TRACEKIT_API_KEY'] == 'tk_live_9876'

    cleaned_output = strip_ansi(result.stdout)
    assert 'Service registered' in cleaned_output
    assert 'tk_live_9876' not in cleaned_output


def test_verify_keeps_existing_env_settings(runner, mock_post):
    env_file = Path.cwd() / '.env'
    env_file.write_text('APP_NAME=shop\nTRACEKIT_API_KEY=\n')
    mock_post.return_value = json_response({'api_key': 'tk_live_9876'})

    result = runner.invoke(app, ['verify', 'sess_42', '123456'])

    assert result.exit_code == 0
    values = read_env_values(env_file.read_text())
    assert values['APP_NAME'] == 'shop'
    assert values['TRACEKIT_API_KEY'] == 'tk_live_9876'


def test_verify_without_saving(runner, mock_post):
    mock_post.return_value = json_response({'api_key': 'tk_live_9876'})

    result = runner.invoke(app, ['verify', 'sess_42', '123456', '--no-save'])

    assert result.exit_code == 0
    assert 'tk_live_9876' in strip_ansi(result.stdout)
    assert not (Path.cwd() / '.env').exists()


def test_verify_rejected_code(runner, mock_post):
    mock_post.return_value = json_response(
        {'error': 'invalid code'}, status_code=422, reason='Unprocessable Entity'
    )

    result = runner.invoke(app, ['verify', 'sess_42', '000000'])

    assert result.exit_code == 1
    assert 'invalid code' in strip_ansi(result.stdout)
    assert not (Path.cwd() / '.env').exists()


def test_verify_without_api_key_in_response(runner, mock_post):
    mock_post.return_value = json_response({'verified': True})

    result = runner.invoke(app, ['verify', 'sess_42', '123456'])

    assert result.exit_code == 1
    assert 'did not return an API key' in strip_ansi(result.stdout)
