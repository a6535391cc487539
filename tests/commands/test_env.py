"""Test suite for the env command."""

from pathlib import Path

import pytest
from typer.testing import CliRunner
from click.utils import strip_ansi

from tracekit_cli.commands.env import app
from tracekit_cli.services.env_service import read_env_values


@pytest.fixture
def runner():
    """Fixture providing a CLI runner."""
    return CliRunner()


@pytest.fixture
def env_file() -> Path:
    return Path.cwd() / '.env'


def test_creates_env_file_with_defaults(runner, env_file):
    result = runner.invoke(app)

    assert result.exit_code == 0

    values = read_env_values(env_file.read_text())
    assert values['TRACEKIT_API_KEY'] == ''
    assert values['TRACEKIT_SERVICE_NAME'] == 'gemvc-app'
    assert values['TRACEKIT_ENDPOINT'] == 'https://app.tracekit.dev/v1/traces'
    assert values['TRACEKIT_SAMPLE_RATE'] == '1.0'

    cleaned_output = strip_ansi(result.stdout)
    assert 'Created .env file' in cleaned_output
    assert 'TRACEKIT_API_KEY is empty' in cleaned_output


def test_creates_env_file_with_given_values(runner, env_file):
    result = runner.invoke(
        app,
        [
            '--api-key',
            'tk_live_1234',
            '--service-name',
            'orders api',
            '--endpoint',
            'https://collector.test/v1/traces',
        ],
    )

    assert result.exit_code == 0

    content = env_file.read_text()
    assert 'TRACEKIT_SERVICE_NAME="orders api"' in content

    values = read_env_values(content)
    assert values['TRACEKIT_API_KEY'] == 'tk_live_1234'
    assert values['TRACEKIT_SERVICE_NAME'] == 'orders api'
    assert values['TRACEKIT_ENDPOINT'] == 'https://collector.test/v1/traces'

    cleaned_output = strip_ansi(result.stdout)
    assert 'TRACEKIT_API_KEY is empty' not in cleaned_output
    assert 'tracekit test' in cleaned_output


def test_updates_existing_file_keeping_other_settings(runner, env_file):
    env_file.write_text('APP_DEBUG=true\nTRACEKIT_API_KEY=old\n')

    result = runner.invoke(app, ['--api-key', 'new-key'])

    assert result.exit_code == 0

    content = env_file.read_text()
    values = read_env_values(content)
    assert values['APP_DEBUG'] == 'true'
    assert values['TRACEKIT_API_KEY'] == 'new-key'
    assert values['TRACEKIT_SERVICE_NAME'] == 'gemvc-app'
    assert content.count('TRACEKIT_API_KEY=') == 1

    cleaned_output = strip_ansi(result.stdout)
    assert 'Updated .env file' in cleaned_output
    assert 'TRACEKIT_API_KEY' in cleaned_output


def test_existing_complete_file_is_left_unchanged(runner, env_file):
    runner.invoke(app, ['--api-key', 'key'])
    before = env_file.read_text()

    result = runner.invoke(app)

    assert result.exit_code == 0
    assert env_file.read_text() == before
    assert 'already contains the TraceKit settings' in strip_ansi(result.stdout)


def test_warns_when_existing_file_has_no_api_key(runner, env_file):
    env_file.write_text('TRACEKIT_API_KEY=\n')

    result = runner.invoke(app, ['--service-name', 'billing'])

    assert result.exit_code == 0
    assert read_env_values(env_file.read_text())['TRACEKIT_SERVICE_NAME'] == 'billing'
    assert 'TRACEKIT_API_KEY is empty' in strip_ansi(result.stdout)


def test_force_replaces_existing_file(runner, env_file):
    env_file.write_text('APP_DEBUG=true\n')

    result = runner.invoke(app, ['--force', '--api-key', 'key'])

    assert result.exit_code == 0

    values = read_env_values(env_file.read_text())
    assert 'APP_DEBUG' not in values
    assert values['TRACEKIT_API_KEY'] == 'key'
    assert 'Created .env file' in strip_ansi(result.stdout)


def test_write_errors_are_reported(runner, env_file):
    env_file.mkdir()

    result = runner.invoke(app)

    assert result.exit_code == 1
    assert 'Error writing .env file' in strip_ansi(result.stdout)


def test_packaged_example_lists_tracer_settings():
    """Test that the packaged example covers every tracer setting."""
    from importlib.resources import files

    content = files('tracekit_cli').joinpath('.env.example').read_text()
    values = read_env_values(content)

    for key in (
        'TRACEKIT_API_KEY',
        'TRACEKIT_SERVICE_NAME',
        'TRACEKIT_ENDPOINT',
        'TRACEKIT_BASE_URL',
        'TRACEKIT_ENABLED',
        'TRACEKIT_SAMPLE_RATE',
        'TRACEKIT_TRACE_RESPONSE',
        'TRACEKIT_TRACE_DB_QUERY',
        'TRACEKIT_TRACE_REQUEST_BODY',
    ):
        assert key in values
