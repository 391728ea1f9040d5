"""
declair — CLI entrypoint.

Usage:
    declair --help
    declair add ripgrep
    declair --no-interactive add ripgrep --no-rebuild
    declair remove ripgrep
    declair list
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from declair import __version__
from declair.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="declair")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "nix_path",
    type=click.Path(exists=False),
    default=None,
    help="Nix configuration file or directory (overrides the stored setting).",
)
@click.option(
    "--no-interactive",
    is_flag=True,
    help="Never prompt; fail if information is missing.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    nix_path: str | None,
    no_interactive: bool,
) -> None:
    """declair — search, add, and remove packages in your Nix configuration."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["nix_path"] = Path(nix_path) if nix_path else None
    ctx.obj["no_interactive"] = no_interactive

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DECLAIR_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("DECLAIR_LOG_FILE"),
        log_file_level=os.environ.get("DECLAIR_LOG_FILE_LEVEL"),
    )


# ── Register commands from declair/ui/cli/ ──────────────────────

from declair.ui.cli.config import config
from declair.ui.cli.packages import add, list_packages, remove, search

cli.add_command(config)
cli.add_command(add)
cli.add_command(remove)
cli.add_command(list_packages)
cli.add_command(search)


if __name__ == "__main__":
    cli()
