"""Reading and updating the TRACEKIT_* entries of a .env file."""

import re
from importlib.resources import files
from pathlib import Path
from typing import Dict, List, Mapping, NamedTuple, Tuple

ENV_LINE = re.compile(r'^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$')

API_KEY = 'TRACEKIT_API_KEY'


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def format_env_value(value: str) -> str:
    """Quote a value when it contains spaces, quotes or a comment sign."""
    if value == '' or not re.search(r'[\s"\'#]', value):
        return value
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


def read_env_values(content: str) -> Dict[str, str]:
    """Return the ``KEY=value`` assignments of a .env file, commented lines excluded."""
    values = {}
    for line in content.splitlines():
        match = ENV_LINE.match(line)
        if match:
            values[match.group(1)] = _unquote(match.group(2))
    return values


def missing_settings(content: str, template: str) -> Dict[str, str]:
    """Return the template assignments whose key is absent from ``content``."""
    present = read_env_values(content)
    return {
        key: value
        for key, value in read_env_values(template).items()
        if key not in present
    }


def set_env_values(content: str, values: Mapping[str, str]) -> Tuple[str, List[str]]:
    """Assign ``values`` in a .env file content.

    Existing assignments are rewritten in place, keys not found are appended
    at the end. Comments and unrelated lines are kept.

    Parameters
    ----------
    content : str
        The current file content.
    values : Mapping[str, str]
        The values to assign, keyed by variable name.

    Returns
    -------
    tuple[str, list[str]]
        The new content and the names of the variables that changed.
    """
    lines = content.splitlines()
    pending = dict(values)
    changed = []

    for position, line in enumerate(lines):
        match = ENV_LINE.match(line)
        if not match or match.group(1) not in pending:
            continue

        key = match.group(1)
        value = pending.pop(key)

        if _unquote(match.group(2)) != value:
            lines[position] = f'{key}={format_env_value(value)}'
            changed.append(key)

    if pending:
        if lines and lines[-1].strip():
            lines.append('')
        for key, value in pending.items():
            lines.append(f'{key}={format_env_value(value)}')
            changed.append(key)

    return '\n'.join(lines) + '\n', changed


def has_api_key(content: str) -> bool:
    return read_env_values(content).get(API_KEY, '').strip() != ''


def read_template() -> str:
    """Return the packaged .env.example content."""
    return files('tracekit_cli').joinpath('.env.example').read_text()


class EnvUpdate(NamedTuple):
    created: bool
    changed: List[str]
    content: str


def update_env_file(
    path: Path, values: Mapping[str, str], replace: bool = False
) -> EnvUpdate:
    """Write TraceKit settings to a .env file.

    A missing file, or any file when ``replace`` is set, is written from the
    packaged template with ``values`` applied. An existing file keeps its
    content: ``values`` are assigned and template settings it lacks are
    appended, and the file is only rewritten when something changed.

    Raises
    ------
    OSError
        When the file cannot be read or written.
    """
    template = read_template()

    if path.exists() and not replace:
        existing = path.read_text()
        content, changed = set_env_values(
            existing, {**missing_settings(existing, template), **values}
        )
        if changed:
            path.write_text(content)
        return EnvUpdate(created=False, changed=changed, content=content)

    content, changed = set_env_values(template, values)
    path.write_text(content)
    return EnvUpdate(created=True, changed=changed, content=content)
