from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated
from rich.markup import escape

from tracekit_core.exceptions import ToolkitException
from tracekit_core.toolkit import ToolkitClient
from tracekit_cli.commands.version import package_version
from tracekit_cli.console.console import Console
from tracekit_cli.services.env_service import API_KEY, update_env_file


app = typer.Typer()

console = Console()


@app.command()
def register(
    email: Annotated[
        str,
        typer.Option(
            '--email',
            '-e',
            prompt='Email address',
            help='Address receiving the verification code.',
        ),
    ],
    organization: Annotated[
        Optional[str],
        typer.Option(
            '--organization',
            help='Organization name. Generated by TraceKit when omitted.',
        ),
    ] = None,
    source: Annotated[
        str,
        typer.Option(
            '--source',
            help='Integration partner code.',
        ),
    ] = 'gemvc',
    environment: Annotated[
        str,
        typer.Option(
            '--environment',
            help='Environment reported with the registration.',
        ),
    ] = 'development',
):
    """Register the service with TraceKit and receive a verification code."""
    client = ToolkitClient()

    console.action(f'Registering service {escape(client.service_name)}')

    try:
        with console.spinner('Contacting TraceKit...'):
            data = client.register_service(
                email,
                organization_name=organization,
                source=source,
                source_metadata={
                    'version': package_version(),
                    'environment': environment,
                },
            )
    except ToolkitException as e:
        console.error(escape(str(e)))
        raise typer.Exit(1)

    console.success(f'Verification code sent to {escape(email)}.')

    session_id = data.get('session_id')
    if session_id:
        console.faint(
            f'Run `tracekit verify {escape(str(session_id))} CODE` to get the API key.'
        )


@app.command()
def verify(
    session_id: Annotated[
        str, typer.Argument(help='The session id returned by `tracekit register`.')
    ],
    code: Annotated[str, typer.Argument(help='The code received by email.')],
    save: Annotated[
        bool,
        typer.Option(
            '--save/--no-save',
            help='Write the API key to the .env file of the current directory.',
        ),
    ] = True,
):
    """Verify the emailed code and obtain the service API key."""
    client = ToolkitClient(api_key='')

    try:
        with console.spinner('Verifying code...'):
            client.verify_code(session_id, code)
    except ToolkitException as e:
        console.error(escape(str(e)))
        raise typer.Exit(1)

    if not client.api_key:
        console.error('TraceKit did not return an API key.')
        raise typer.Exit(1)

    console.success('Service registered.')

    if not save:
        console.print(f'API key: [highlight]{escape(client.api_key)}[/highlight]')
        return

    try:
        update_env_file(Path.cwd() / '.env', {API_KEY: client.api_key})
    except OSError as e:
        console.error(f'Error writing .env file: {escape(str(e))}')
        console.print(f'API key: [highlight]{escape(client.api_key)}[/highlight]')
        raise typer.Exit(1)

    console.faint(f'Saved {API_KEY} to .env. Run `tracekit test` to send a demo trace.')
