"""
Flexoki-themed Console class for Rich library
Uses the warm, inky Flexoki color scheme by Steph Ango
https://stephango.com/flexoki
"""

import os
from contextlib import contextmanager
from typing import Iterable, Optional

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from tracekit_cli.models.config import CliConfig

# Flexoki color palette (dark theme - 400 series)
COLORS_DARK = {
    'bg': '#1C1B1A',
    'ui': '#343331',
    'ui_2': '#403E3C',
    'tx_3': '#B7B5AC',
    'tx_2': '#CECDC3',
    'tx': '#E6E4D9',
    'red': '#D14D41',
    'orange': '#DA702C',
    'yellow': '#D0A215',
    'green': '#879A39',
    'cyan': '#3AA99F',
    'blue': '#4385BE',
    'purple': '#8B7EC8',
    'magenta': '#CE5D97',
}

# Flexoki color palette (light theme - 600 series)
COLORS_LIGHT = {
    'bg': '#FFFCF0',
    'ui': '#E6E4D9',
    'ui_2': '#DAD8CE',
    'tx_3': '#6F6E69',
    'tx_2': '#403E3C',
    'tx': '#100F0F',
    'red': '#AF3029',
    'orange': '#BC5215',
    'yellow': '#AD8301',
    'green': '#66800B',
    'cyan': '#24837B',
    'blue': '#205EA6',
    'purple': '#5E409D',
    'magenta': '#A02F6F',
}


class Console:
    """
    A themed console wrapper using the Flexoki color scheme.
    Provides styled messages, panels, tables and spinners.
    Automatically detects terminal background and uses appropriate theme.
    """

    @staticmethod
    def detect_terminal_background(config: Optional[CliConfig] = None) -> str:
        """
        Detect if the terminal has a light or dark background.
        Returns 'dark' or 'light'.

        Detection methods:
        1. Check CliConfig theme setting
        2. Check COLORFGBG environment variable
        3. Default to 'dark' if uncertain
        """
        if config is not None and config.theme is not None:
            return config.theme

        # Format is "foreground;background", 7 and 15 are light backgrounds
        colorfgbg = os.environ.get('COLORFGBG', '')
        if colorfgbg:
            parts = colorfgbg.split(';')
            if len(parts) >= 2:
                try:
                    bg_color = int(parts[-1])
                    if bg_color in (7, 15):
                        return 'light'
                    elif bg_color in (0, 1, 2, 3, 4, 5, 6, 8):
                        return 'dark'
                except ValueError:
                    pass

        return 'dark'

    def __init__(self, theme_mode: Optional[str] = None, config: Optional[CliConfig] = None):
        """
        Initialize the console with Flexoki theme.

        Args:
            theme_mode: Optional theme mode ('light' or 'dark').
                       If None, auto-detects based on config or terminal background.
            config: Optional CliConfig instance for loading theme from configuration.
        """
        if config is None:
            config = CliConfig()

        if theme_mode is None:
            theme_mode = self.detect_terminal_background(config)

        self.theme_mode = theme_mode
        self.COLORS = COLORS_LIGHT if theme_mode == 'light' else COLORS_DARK

        self.theme = Theme(
            {
                'default': self.COLORS['tx'],
                'muted': self.COLORS['tx_2'],
                'faint': self.COLORS['tx_3'],
                'red': self.COLORS['red'],
                'orange': self.COLORS['orange'],
                'yellow': self.COLORS['yellow'],
                'green': self.COLORS['green'],
                'cyan': self.COLORS['cyan'],
                'blue': self.COLORS['blue'],
                'purple': self.COLORS['purple'],
                'magenta': self.COLORS['magenta'],
                # Message types
                'success': f'bold {self.COLORS["green"]}',
                'info': self.COLORS['cyan'],
                'warning': f'bold {self.COLORS["orange"]}',
                'error': f'bold {self.COLORS["red"]}',
                # Semantic colors
                'highlight': f'bold {self.COLORS["yellow"]}',
                'link': f'underline {self.COLORS["blue"]}',
                'code': Style(bgcolor=self.COLORS['ui'], color=self.COLORS['tx']),
                'repr.number': Style(color=self.COLORS['blue'], bold=True),
                'status.spinner': self.COLORS['tx_3'],
            }
        )

        self.console = RichConsole(theme=self.theme)

    def print(self, *args, style=None, **kwargs):
        """Print with optional style."""
        self.console.print(*args, style=style, **kwargs)

    def _icon_and_text(self, message: str, icon: str, icon_style: str) -> Table:
        grid = Table.grid(padding=(0, 1), expand=False)
        grid.add_column(width=1)
        grid.add_column()
        grid.add_row(Text(icon, style=icon_style), Text.from_markup(message))
        return grid

    def _message(self, message: str, icon: str, style: str, panel: bool):
        formatted = self._icon_and_text(message, icon, style)
        if panel:
            self.panel(formatted, border_style=style)
        else:
            self.print(formatted)

    def success(self, message: str, prefix: str = '✓', panel: bool = False):
        """Print a success message."""
        self._message(message, prefix, 'success', panel)

    def info(self, message: str, prefix: str = 'ℹ', panel: bool = False):
        """Print an info message."""
        self._message(message, prefix, 'info', panel)

    def warning(self, message: str, prefix: str = '⚠', panel: bool = False):
        """Print a warning message."""
        self._message(message, prefix, 'warning', panel)

    def error(self, message: str, prefix: str = '✗', panel: bool = False):
        """Print an error message."""
        self._message(message, prefix, 'error', panel)

    def muted(self, message: str):
        """Print muted text."""
        self.print(message, style='muted')

    def faint(self, message: str):
        """Print faint text."""
        self.print(message, style='faint')

    def highlight(self, message: str):
        """Print highlighted text."""
        self.print(message, style='highlight')

    def action(self, message: str, style: str = 'faint', space_before: bool = False):
        """Print a highlighted action."""
        if space_before:
            self.newline()
        self.print(f'[{style}]▣[/{style}] {message}')
        self.newline()

    def panel(self, content, title: str = None, border_style: str = None):
        """Display content in a panel."""
        self.console.print(
            Panel(
                content,
                title=title,
                border_style=border_style or self.COLORS['ui_2'],
                title_align='left',
            )
        )

    def key_values(self, rows: Iterable[tuple[str, str]], title: str = None):
        """Print aligned key/value pairs, keys in faint style."""
        table = Table.grid(padding=(0, 2), expand=False)
        table.add_column(style='faint', no_wrap=True)
        table.add_column()

        for key, value in rows:
            table.add_row(key, Text(str(value)))

        if title:
            self.highlight(title)
        self.print(table)

    @contextmanager
    def spinner(self, message: str = 'Loading...'):
        """
        Context manager for a spinner.

        Usage:
            with console.spinner("Sending trace..."):
                tracer.flush()
        """
        with self.console.status(
            f'[{self.COLORS["cyan"]}]{message}[/{self.COLORS["cyan"]}]',
            spinner='dots',
            spinner_style='status.spinner',
        ):
            yield

    def newline(self, count: int = 1):
        """Print newlines."""
        self.console.print('\n' * (count - 1))

    def get_theme_mode(self) -> str:
        """Get the current theme mode ('light' or 'dark')."""
        return self.theme_mode
