"""
Agent-Attest command line entry point.
"""

import logging
from pathlib import Path

import click
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from agentattest import __version__
from agentattest.cli.feedback_cli import feedback
from agentattest.cli.output import FORMAT_OPTION, console, emit
from agentattest.cli.validation_cli import validation
from agentattest.config import RegistryConfig
from agentattest.deployment import Deployment
from agentattest.identity.keystore import SoftwareKeyStore
from agentattest.storage.snapshot import save_snapshot


@click.group()
@click.version_option(__version__, prog_name="agentattest")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def app(verbose: bool):
    """Agent-Attest: reputation and validation registries for agents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("init")
@click.argument("snapshot_path", type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file.")
def init(snapshot_path: str, force: bool):
    """Create an empty deployment snapshot using AGENTATTEST_* settings."""
    path = Path(snapshot_path)
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")
    config = RegistryConfig.from_env()
    save_snapshot(path, Deployment.create(config))
    console.print(f"[green]Created snapshot[/green] {path} (chain {config.chain_id})")


@app.group()
def keys():
    """Manage local signing keys."""
    pass


@keys.command("new")
@FORMAT_OPTION
def new_key(fmt: str):
    """Generate an Ed25519 signing key and print its address."""
    private_key = ed25519.Ed25519PrivateKey.generate()
    address = SoftwareKeyStore().import_key(private_key)
    raw = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    data = {"address": address, "private_key": raw.hex()}
    if emit(data, fmt):
        return
    console.print(f"Address:     [cyan]{address}[/cyan]")
    console.print(f"Private key: {raw.hex()}")
    console.print("[yellow]Store the private key securely; it is not saved.[/yellow]")


app.add_command(feedback)
app.add_command(validation)


if __name__ == "__main__":
    app()
