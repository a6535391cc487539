"""Command line interface for the TraceKit client."""

from typing import Optional

import typer
from typing_extensions import Annotated

from tracekit_cli.console.console import Console
from tracekit_cli.commands.config import app as config_command
from tracekit_cli.commands.env import app as env_command
from tracekit_cli.commands.register import app as register_command
from tracekit_cli.commands.status import app as status_command
from tracekit_cli.commands.test import app as test_command
from tracekit_cli.commands.version import app as version_command, package_version


app = typer.Typer(
    name='tracekit',
    help='TraceKit tracing client.',
    no_args_is_help=True,
    add_completion=False,
    pretty_exceptions_enable=False,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(
            f'[{console.COLORS["blue"]}]▣ TraceKit[/{console.COLORS["blue"]}]. Every request, traced.'
        )
        console.newline()
        console.info(f'Version: {package_version()}')
        console.newline()
        console.muted('For more information run `tracekit version`.')
        raise typer.Exit()


@app.callback()
def callback(
    version: Annotated[
        Optional[bool],
        typer.Option(
            '--version',
            callback=version_callback,
            is_eager=True,
            help='Show TraceKit client version',
        ),
    ] = None,
):
    """Define the common command options"""


app.add_typer(config_command)
app.add_typer(env_command)
app.add_typer(register_command)
app.add_typer(status_command)
app.add_typer(test_command)
app.add_typer(version_command)


def main():
    """Entry point for the CLI."""
    app()
