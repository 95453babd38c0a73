"""
soroban-tx: command-line surface for the transaction pipeline.

Global options:
  --rpc-url TEXT              Soroban RPC endpoint (env SOROBAN_RPC_URL)
  --network-passphrase TEXT   Network passphrase (env SOROBAN_NETWORK_PASSPHRASE)
  --verbose / -v              Debug logging

Examples:
  soroban-tx --help
  soroban-tx tx simulate AAAA...
  soroban-tx tx run --secret-key S... AAAA...
  soroban-tx tx fetch 3389e9f0f1a65f19736cacf544c2e825313e8447f569233bb8db39aa607c8889
  cat tx.txt | soroban-tx tx hash -

Configuration is resolved in this order (highest to lowest priority):
  1. Command-line flags
  2. Environment variables (SOROBAN_*)
  3. Built-in defaults (testnet passphrase, http://localhost:8000/soroban/rpc)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import typer

from ..config import PipelineConfig
from ..version import __version__
from . import tx

app = typer.Typer(
    name="soroban-tx",
    help="Simulate, assemble, authorize, submit and track Soroban transactions",
    no_args_is_help=True,
    add_completion=False,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Ctx:
    config: PipelineConfig
    verbose: bool = False


def configure_logging(level: str | int) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT, level=level)
    else:
        root.setLevel(level)


@app.callback()
def main_callback(
    ctx: typer.Context,
    rpc_url: Optional[str] = typer.Option(
        None,
        "--rpc-url",
        help="Soroban RPC endpoint URL",
        envvar="SOROBAN_RPC_URL",
    ),
    network_passphrase: Optional[str] = typer.Option(
        None,
        "--network-passphrase",
        help="Network passphrase used for hashes and signatures",
        envvar="SOROBAN_NETWORK_PASSPHRASE",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
) -> None:
    """
    Soroban transaction pipeline CLI.

    Commands live under the `tx` group; see `soroban-tx tx --help`.
    """
    try:
        config = PipelineConfig.with_overrides(
            PipelineConfig.from_env(),
            rpc_url=rpc_url,
            network_passphrase=network_passphrase,
        )
    except ValueError as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(1)
    configure_logging("DEBUG" if verbose else config.log_level)
    ctx.obj = Ctx(config=config, verbose=verbose)


@app.command("version")
def version() -> None:
    """Print the CLI version."""
    typer.echo(f"soroban-tx {__version__}")


app.add_typer(tx.app, name="tx")


def main() -> None:
    """Entry point for the soroban-tx CLI."""
    app()


if __name__ == "__main__":
    main()
