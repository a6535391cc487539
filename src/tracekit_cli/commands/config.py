import json

import typer
from typing_extensions import Annotated
from pydantic import ValidationError
from rich.markup import escape

from tracekit_core.models.config import TraceKitConfig
from tracekit_cli.console.console import Console
from tracekit_cli.models import OutputMode


app = typer.Typer()

console = Console()


def config_rows(config: TraceKitConfig) -> list[tuple[str, str]]:
    """Flatten the configuration for display, masking the api key."""
    values = config.model_dump(exclude={'trace_response_body'})
    rows = [('api_key', config.masked_api_key() or '(not set)')]
    rows.extend((key, str(value)) for key, value in values.items())
    return rows


@app.command()
def config(
    output: Annotated[
        OutputMode,
        typer.Option(
            '--output',
            '-o',
            help='Output format, table or json.',
        ),
    ] = OutputMode.TABLE,
):
    """Show the tracer configuration resolved from the environment."""
    try:
        resolved = TraceKitConfig.resolve()
    except ValidationError as e:
        console.error(f'Invalid configuration: {escape(str(e))}')
        raise typer.Exit(1)

    rows = config_rows(resolved)

    if output == OutputMode.JSON:
        typer.echo(json.dumps(dict(rows), indent=2))
        return

    console.action('TraceKit configuration')
    console.key_values(rows)
    console.newline()

    if resolved.enabled:
        console.success(
            f'Tracing enabled, sampling {resolved.sample_rate * 100:g}% of requests.'
        )
    elif resolved.api_key is None:
        console.warning('Tracing disabled, TRACEKIT_API_KEY is not set.')
    else:
        console.warning('Tracing disabled by TRACEKIT_ENABLED.')
