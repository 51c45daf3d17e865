"""Shared output helpers for the Agent-Attest CLI."""

import json
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console

from agentattest.deployment import Deployment
from agentattest.exceptions import StorageError
from agentattest.storage.snapshot import load_snapshot

console = Console()

FORMAT_OPTION = click.option(
    "--format", "fmt",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format (table, json, or yaml).",
)

SNAPSHOT_OPTION = click.option(
    "--snapshot", "snapshot_path",
    type=click.Path(dir_okay=False),
    envvar="AGENTATTEST_SNAPSHOT",
    required=True,
    help="Registry snapshot file (or AGENTATTEST_SNAPSHOT).",
)


def output_json(data: object) -> None:
    """Print data as JSON to stdout."""
    click.echo(json.dumps(data, indent=2, default=str))


def output_yaml(data: object) -> None:
    """Print data as YAML to stdout."""
    click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


def emit(data: object, fmt: str) -> bool:
    """Print structured output; returns False when the caller should render a table."""
    if fmt == "json":
        output_json(data)
        return True
    if fmt == "yaml":
        output_yaml(data)
        return True
    return False


def open_snapshot(path: str) -> Deployment:
    """Load a snapshot, converting storage failures into a CLI error."""
    try:
        return load_snapshot(Path(path))
    except StorageError as exc:
        raise click.ClickException(str(exc)) from exc


def short(address: Optional[str]) -> str:
    """Abbreviate an address for table display."""
    if not address:
        return "N/A"
    return f"{address[:8]}…{address[-6:]}"
