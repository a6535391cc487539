from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated
from rich.markup import escape

from tracekit_cli.console.console import Console
from tracekit_cli.services.env_service import has_api_key, update_env_file


app = typer.Typer()

console = Console()


@app.command()
def env(
    api_key: Annotated[
        Optional[str],
        typer.Option(
            '--api-key',
            help='The TraceKit API key written as TRACEKIT_API_KEY.',
        ),
    ] = None,
    service_name: Annotated[
        Optional[str],
        typer.Option(
            '--service-name',
            help='The service name written as TRACEKIT_SERVICE_NAME.',
        ),
    ] = None,
    endpoint: Annotated[
        Optional[str],
        typer.Option(
            '--endpoint',
            help='The collector URL written as TRACEKIT_ENDPOINT.',
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            '--force',
            help='Replace an existing .env file instead of updating it.',
        ),
    ] = False,
):
    """Write the TraceKit settings to the .env file of the current directory.

    A missing file is created from the default configuration. An existing file
    keeps its content: the given values are updated and missing TraceKit
    settings are appended.
    """
    values = {
        key: value
        for key, value in (
            ('TRACEKIT_API_KEY', api_key),
            ('TRACEKIT_SERVICE_NAME', service_name),
            ('TRACEKIT_ENDPOINT', endpoint),
        )
        if value is not None
    }

    env_file_path: Path = Path.cwd() / '.env'

    console.action('Configure TraceKit environment')

    try:
        update = update_env_file(env_file_path, values, replace=force)
    except OSError as e:
        console.error(f'Error writing .env file: {escape(str(e))}')
        raise typer.Exit(1)

    if update.created:
        console.success('[success]Created .env file[/success]')
    elif update.changed:
        console.success(
            f'[success]Updated .env file[/success]: {escape(", ".join(update.changed))}'
        )
    else:
        console.info('.env file already contains the TraceKit settings.')

    if not has_api_key(update.content):
        console.warning(
            'TRACEKIT_API_KEY is empty, tracing stays disabled until it is set.'
        )
        console.faint('Run `tracekit register` to create a key.')
    else:
        console.faint('Run `tracekit test` to send a demo trace.')
