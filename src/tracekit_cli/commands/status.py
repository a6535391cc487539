import json
from typing import Any, NoReturn

import typer
from typing_extensions import Annotated
from rich.markup import escape

from tracekit_core.exceptions import ToolkitException
from tracekit_core.toolkit import ToolkitClient
from tracekit_cli.console.console import Console
from tracekit_cli.models import HeartbeatStatus, OutputMode


app = typer.Typer()

console = Console()


def response_rows(data: dict) -> list[tuple[str, str]]:
    """Flatten a TraceKit response for display, nested values as JSON."""
    rows = []
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        rows.append((str(key), str(value)))
    return rows


def report_failure(error: ToolkitException) -> NoReturn:
    console.error(escape(str(error)))
    if error.is_unauthorized:
        console.faint('Check TRACEKIT_API_KEY or run `tracekit register`.')
    raise typer.Exit(1)


@app.command()
def status(
    output: Annotated[
        OutputMode,
        typer.Option(
            '--output',
            '-o',
            help='Output format, table or json.',
        ),
    ] = OutputMode.TABLE,
):
    """Show the TraceKit integration status of the configured API key."""
    client = ToolkitClient()

    try:
        with console.spinner('Checking status...'):
            data = client.get_status()
    except ToolkitException as e:
        report_failure(e)

    if output == OutputMode.JSON:
        typer.echo(json.dumps(data, indent=2))
        return

    console.action(f'TraceKit status for {escape(client.service_name)}')
    console.key_values(response_rows(data))


@app.command()
def heartbeat(
    service_status: Annotated[
        HeartbeatStatus,
        typer.Argument(
            metavar='STATUS',
            help='The status to report.',
        ),
    ] = HeartbeatStatus.HEALTHY,
):
    """Send a heartbeat for the configured service."""
    client = ToolkitClient()
    metadata: dict[str, Any] = {'source': 'tracekit-cli'}

    try:
        with console.spinner('Sending heartbeat...'):
            client.send_heartbeat(service_status.value, metadata)
    except ToolkitException as e:
        report_failure(e)

    console.success(
        f'Reported {escape(client.service_name)} as [highlight]{service_status.value}[/highlight].'
    )
