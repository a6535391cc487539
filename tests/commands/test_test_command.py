"""Test suite for the test command."""

from unittest.mock import patch, MagicMock

import pytest
import requests
from typer.testing import CliRunner
from click.utils import strip_ansi

from tracekit_cli.commands.test import app


@pytest.fixture
def runner():
    """Fixture providing a CLI runner."""
    return CliRunner()


@pytest.fixture
def mock_post():
    with patch('tracekit_core.tracing.transport.requests.post') as mock:
        mock.return_value = MagicMock(status_code=200)
        yield mock


@pytest.fixture(autouse=True)
def no_sleep():
    with patch('tracekit_cli.services.demo_service.time.sleep'):
        yield


def test_test_command_requires_api_key(runner, mock_post):
    """Test that the command fails when tracing is disabled."""
    result = runner.invoke(app)

    assert result.exit_code == 1
    assert 'Tracing is disabled' in strip_ansi(result.stdout)
    mock_post.assert_not_called()


def test_test_command_sends_demo_trace(runner, mock_post, monkeypatch):
    """Test that the demo trace is sent to the configured endpoint."""
    monkeypatch.setenv('TRACEKIT_API_KEY', 'key')
    monkeypatch.setenv('TRACEKIT_ENDPOINT', 'https://collector.test/v1/traces')

    result = runner.invoke(app)

    assert result.exit_code == 0
    cleaned_output = strip_ansi(result.stdout)
    assert 'Sent trace' in cleaned_output
    assert 'with 4 spans' in cleaned_output

    mock_post.assert_called_once()
    assert mock_post.call_args.args[0] == 'https://collector.test/v1/traces'
    assert mock_post.call_args.kwargs['headers']['X-API-Key'] == 'key'


def test_test_command_with_error(runner, mock_post, monkeypatch):
    """Test that the failing demo trace is sent."""
    monkeypatch.setenv('TRACEKIT_API_KEY', 'key')

    result = runner.invoke(app, ['--error'])

    assert result.exit_code == 0
    assert 'Sending failing demo trace' in strip_ansi(result.stdout)
    assert 'STATUS_CODE_ERROR' in mock_post.call_args.kwargs['data']


def test_test_command_reports_delivery_failure(runner, mock_post, monkeypatch):
    """Test that a rejected payload is reported with a non-zero exit code."""
    monkeypatch.setenv('TRACEKIT_API_KEY', 'key')
    mock_post.side_effect = requests.exceptions.ConnectionError('refused')

    result = runner.invoke(app)

    assert result.exit_code == 1
    assert 'Could not deliver trace' in strip_ansi(result.stdout)


def test_test_command_ignores_background_export(runner, mock_post, monkeypatch):
    """Test that delivery failures are reported when background export is on."""
    monkeypatch.setenv('TRACEKIT_API_KEY', 'key')
    monkeypatch.setenv('TRACEKIT_BACKGROUND_EXPORT', 'true')
    mock_post.side_effect = requests.exceptions.Timeout('timed out')

    result = runner.invoke(app)

    assert result.exit_code == 1
    assert 'Could not deliver trace' in strip_ansi(result.stdout)
    mock_post.assert_called_once()


def test_test_command_sends_inline_with_background_export(
    runner, mock_post, monkeypatch
):
    """Test that the demo trace is delivered before the command reports it."""
    monkeypatch.setenv('TRACEKIT_API_KEY', 'key')
    monkeypatch.setenv('TRACEKIT_BACKGROUND_EXPORT', 'true')

    result = runner.invoke(app)

    assert result.exit_code == 0
    assert 'Sent trace' in strip_ansi(result.stdout)
    mock_post.assert_called_once()
