"""
Agent-Attest Validation CLI

- status: latest response for a request hash
- summary: responded-validation count and average for an agent
- list: request hashes for an agent or a validator
"""

from datetime import datetime, timezone
from typing import Optional

import click
from rich import box
from rich.table import Table

from agentattest.cli.output import FORMAT_OPTION, SNAPSHOT_OPTION, console, emit, open_snapshot, short
from agentattest.exceptions import AttestationError
from agentattest.tags import tag_text


def _format_timestamp(ts: int) -> str:
    """Format a unix timestamp for display; 0 means no response yet."""
    if ts == 0:
        return "pending"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@click.group()
def validation():
    """Inspect validation requests and responses."""
    pass


@validation.command("status")
@click.argument("request_hash")
@FORMAT_OPTION
@SNAPSHOT_OPTION
def status(request_hash: str, fmt: str, snapshot_path: str):
    """Show the latest status of REQUEST_HASH."""
    deployment = open_snapshot(snapshot_path)
    try:
        result = deployment.validation.get_validation_status(request_hash)
    except AttestationError as exc:
        raise click.ClickException(str(exc)) from exc

    data = {
        "request_hash": request_hash,
        "validator": result.validator,
        "agent_id": result.agent_id,
        "response": result.response,
        "tag": tag_text(result.tag),
        "last_update": result.last_update,
        "response_uri": result.response_uri,
    }
    if emit(data, fmt):
        return

    console.print(f"\n[bold blue]Validation {request_hash}[/bold blue]\n")
    console.print(f"  Validator:   {result.validator}")
    console.print(f"  Agent:       {result.agent_id}")
    console.print(f"  Response:    {result.response if result.responded else '-'}")
    console.print(f"  Tag:         {tag_text(result.tag) or '-'}")
    console.print(f"  Updated:     {_format_timestamp(result.last_update)}")
    console.print(f"  Evidence:    {result.response_uri or '-'}\n")


@validation.command("summary")
@click.argument("agent_id", type=int)
@click.option("--validator", "validators", multiple=True, help="Only count these validators.")
@click.option("--tag", default=None, help="Filter on the response tag (text).")
@FORMAT_OPTION
@SNAPSHOT_OPTION
def summary(
    agent_id: int,
    validators: tuple[str, ...],
    tag: Optional[str],
    fmt: str,
    snapshot_path: str,
):
    """Show responded-validation count and average response for AGENT_ID."""
    deployment = open_snapshot(snapshot_path)
    try:
        result = deployment.validation.summarize(agent_id, validators, tag)
    except AttestationError as exc:
        raise click.ClickException(str(exc)) from exc

    data = {
        "agent_id": agent_id,
        "count": result.count,
        "average_response": result.average_response,
    }
    if emit(data, fmt):
        return
    console.print(f"\n[bold blue]Validation summary for agent {agent_id}[/bold blue]")
    console.print(f"  Responded: {result.count}")
    console.print(f"  Average:   {result.average_response}\n")


@validation.command("list")
@click.option("--agent", "agent_id", type=int, default=None, help="List requests for an agent.")
@click.option("--validator", default=None, help="List requests addressed to a validator.")
@FORMAT_OPTION
@SNAPSHOT_OPTION
def list_requests(agent_id: Optional[int], validator: Optional[str], fmt: str, snapshot_path: str):
    """List validation requests by agent or by validator."""
    if (agent_id is None) == (validator is None):
        raise click.UsageError("Pass exactly one of --agent or --validator.")
    deployment = open_snapshot(snapshot_path)
    registry = deployment.validation
    try:
        if agent_id is not None:
            hashes = registry.get_agent_validations(agent_id)
        else:
            hashes = registry.get_validator_requests(validator)
        statuses = [(h, registry.get_validation_status(h)) for h in hashes]
    except AttestationError as exc:
        raise click.ClickException(str(exc)) from exc

    rows = [
        {
            "request_hash": "0x" + h.hex(),
            "validator": s.validator,
            "agent_id": s.agent_id,
            "response": s.response if s.responded else None,
            "last_update": s.last_update,
        }
        for h, s in statuses
    ]
    if emit(rows, fmt):
        return

    table = Table(box=box.ROUNDED)
    table.add_column("Request", style="cyan", no_wrap=True)
    table.add_column("Validator")
    table.add_column("Agent", justify="right")
    table.add_column("Response", justify="right")
    table.add_column("Updated", style="dim")
    for row in rows:
        table.add_row(
            row["request_hash"][:18] + "…",
            short(row["validator"]),
            str(row["agent_id"]),
            "-" if row["response"] is None else str(row["response"]),
            _format_timestamp(row["last_update"]),
        )
    console.print(table)
