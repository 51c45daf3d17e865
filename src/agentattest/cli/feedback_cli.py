"""
Agent-Attest Feedback CLI

Read-only commands over a registry snapshot:
- summary: count and average score for an agent
- list: every matching feedback entry
- responses: response count for one entry
"""

from typing import Optional

import click
from rich import box
from rich.table import Table

from agentattest.cli.output import FORMAT_OPTION, SNAPSHOT_OPTION, console, emit, open_snapshot, short
from agentattest.exceptions import AttestationError
from agentattest.tags import tag_text


def _score_style(score: int) -> str:
    """Return a rich style string for a 0-100 score."""
    if score >= 80:
        return "bold green"
    if score >= 50:
        return "yellow"
    return "red"


@click.group()
def feedback():
    """Inspect feedback recorded in the reputation registry."""
    pass


@feedback.command("summary")
@click.argument("agent_id", type=int)
@click.option("--client", "clients", multiple=True, help="Only count these counterparties.")
@click.option("--tag1", default=None, help="Filter on the first tag (text).")
@click.option("--tag2", default=None, help="Filter on the second tag (text).")
@FORMAT_OPTION
@SNAPSHOT_OPTION
def summary(
    agent_id: int,
    clients: tuple[str, ...],
    tag1: Optional[str],
    tag2: Optional[str],
    fmt: str,
    snapshot_path: str,
):
    """Show the feedback count and average score for AGENT_ID."""
    deployment = open_snapshot(snapshot_path)
    try:
        result = deployment.reputation.summarize(agent_id, clients, tag1, tag2)
    except AttestationError as exc:
        raise click.ClickException(str(exc)) from exc

    data = {"agent_id": agent_id, "count": result.count, "average_score": result.average_score}
    if emit(data, fmt):
        return

    style = _score_style(result.average_score)
    console.print(f"\n[bold blue]Feedback summary for agent {agent_id}[/bold blue]")
    console.print(f"  Entries: {result.count}")
    console.print(f"  Average: [{style}]{result.average_score}[/{style}]\n")


@feedback.command("list")
@click.argument("agent_id", type=int)
@click.option("--client", "clients", multiple=True, help="Only show these counterparties.")
@click.option("--tag1", default=None, help="Filter on the first tag (text).")
@click.option("--tag2", default=None, help="Filter on the second tag (text).")
@click.option("--include-revoked", is_flag=True, default=False, help="Also show revoked entries.")
@FORMAT_OPTION
@SNAPSHOT_OPTION
def list_feedback(
    agent_id: int,
    clients: tuple[str, ...],
    tag1: Optional[str],
    tag2: Optional[str],
    include_revoked: bool,
    fmt: str,
    snapshot_path: str,
):
    """List feedback entries for AGENT_ID."""
    deployment = open_snapshot(snapshot_path)
    try:
        batch = deployment.reputation.bulk_read(agent_id, clients, tag1, tag2, include_revoked)
    except AttestationError as exc:
        raise click.ClickException(str(exc)) from exc

    rows = [
        {
            "client": batch.counterparties[i],
            "score": batch.scores[i],
            "tag1": tag_text(batch.tag1s[i]),
            "tag2": tag_text(batch.tag2s[i]),
            "revoked": batch.revoked[i],
        }
        for i in range(len(batch))
    ]
    if emit(rows, fmt):
        return

    console.print(f"\n[bold blue]Feedback for agent {agent_id}[/bold blue]\n")
    table = Table(box=box.ROUNDED)
    table.add_column("Client", style="cyan", no_wrap=True)
    table.add_column("Score", justify="right")
    table.add_column("Tag 1")
    table.add_column("Tag 2")
    table.add_column("Revoked")
    for row in rows:
        style = _score_style(row["score"])
        table.add_row(
            short(row["client"]),
            f"[{style}]{row['score']}[/{style}]",
            row["tag1"],
            row["tag2"],
            "[red]yes[/red]" if row["revoked"] else "no",
        )
    console.print(table)
    console.print(f"\n[dim]{len(rows)} entries[/dim]\n")


@feedback.command("responses")
@click.argument("agent_id", type=int)
@click.argument("client")
@click.argument("index", type=int)
@click.option("--responder", "responders", multiple=True, help="Responders to count.")
@FORMAT_OPTION
@SNAPSHOT_OPTION
def responses(
    agent_id: int,
    client: str,
    index: int,
    responders: tuple[str, ...],
    fmt: str,
    snapshot_path: str,
):
    """Count responses to entry INDEX left by CLIENT for AGENT_ID.

    Only the listed responders are counted; with none listed the count is 0.
    """
    deployment = open_snapshot(snapshot_path)
    try:
        count = deployment.reputation.get_response_count(agent_id, client, index, responders)
    except AttestationError as exc:
        raise click.ClickException(str(exc)) from exc

    data = {"agent_id": agent_id, "client": client, "index": index, "responses": count}
    if emit(data, fmt):
        return
    console.print(f"Responses to feedback {index} from {short(client)}: [bold]{count}[/bold]")
