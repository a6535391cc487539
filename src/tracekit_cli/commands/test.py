import logging

import typer
from typing_extensions import Annotated
from rich.markup import escape

from tracekit_core.logging import create_isolated_logger
from tracekit_core.models.config import TraceKitConfig
from tracekit_core.tracing.client import Tracer
from tracekit_core.tracing.transport import HttpTransport
from tracekit_cli.console.console import Console
from tracekit_cli.models import CliConfig
from tracekit_cli.services import record_demo_trace


app = typer.Typer()

console = Console()


@app.command()
def test(
    error: Annotated[
        bool,
        typer.Option(
            '--error',
            help='Send a failing request trace with a recorded exception.',
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            '--verbose',
            '-v',
            help='Show the tracer log while sending.',
        ),
    ] = False,
):
    """Send a demo trace to check the connection with TraceKit."""
    cli_config = CliConfig()

    logger = create_isolated_logger(
        level=logging.DEBUG if verbose else cli_config.logging_level,
        file_path=cli_config.logging_file,
    )

    # Always delivered inline, TRACEKIT_BACKGROUND_EXPORT does not apply
    config = TraceKitConfig.resolve()
    tracer = Tracer(
        config=config,
        transport=HttpTransport.from_config(config, logger),
        logger=logger,
    )

    if not tracer.is_enabled():
        console.error('Tracing is disabled. Set TRACEKIT_API_KEY and TRACEKIT_ENABLED.')
        raise typer.Exit(1)

    console.action(f'Sending {"failing " if error else ""}demo trace')
    console.faint(f'Endpoint: {escape(tracer.config.endpoint)}')
    console.faint(f'Service: {escape(tracer.config.service_name)}')
    console.newline()

    with console.spinner('Sending trace...'):
        result = record_demo_trace(tracer, fail=error)
        tracer.shutdown()

    if not result.sent:
        console.error(
            f'Could not deliver trace {result.trace_id}. Run with --verbose for details.'
        )
        raise typer.Exit(1)

    console.success(
        f'Sent trace [highlight]{result.trace_id}[/highlight] with {result.spans_created} spans.'
    )
    console.faint('Check the TraceKit dashboard for the trace.')
