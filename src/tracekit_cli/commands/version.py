import sys
import platform
from importlib.metadata import PackageNotFoundError, version as metadata_version

import typer

from tracekit_cli.console.console import Console


app = typer.Typer()

console = Console()


def package_version() -> str:
    try:
        return metadata_version('tracekit')
    except PackageNotFoundError:
        return 'Development version'


@app.command()
def version():
    """Print TraceKit client version information."""
    console.highlight('TraceKit. Every request, traced.')
    console.newline()

    console.info(f'Version: {package_version()}')
    console.muted(
        f'Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}'
    )
    console.muted(f'Platform: {platform.platform()}')
