"""
CLI commands and helpers for declair's own settings.

``ensure_settings`` is shared by every command that needs to know
where the Nix file is: it loads config.yml, bootstraps it with
prompts on first run, and applies the ``--config`` override.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import NoReturn

import click

from declair.core.config.loader import (
    ConfigError,
    load_settings,
    save_settings,
    settings_path,
)
from declair.core.models.settings import Settings


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    click.secho(f"❌ {message}", fg="red")
    sys.exit(1)


def prompt_settings() -> Settings:
    """Ask the user for every setting."""
    nix_path = click.prompt(
        "Enter the path to your NixOS configuration file (with 'with pkgs; [')"
    )
    auto_rebuild = click.confirm(
        "Automatically rebuild NixOS after adding a package?", default=False
    )
    home_manager = flake = False
    if auto_rebuild:
        home_manager = click.confirm(
            "Use Home Manager as a NixOS configuration?", default=False
        )
        flake = click.confirm("Use a flake as a NixOS configuration?", default=False)

    return Settings(
        nix_path=nix_path,
        auto_rebuild=auto_rebuild,
        home_manager=home_manager,
        flake=flake,
    )


def ensure_settings(ctx: click.Context) -> Settings:
    """Load settings, creating them interactively on first run."""
    override: Path | None = ctx.obj.get("nix_path")
    no_interactive: bool = ctx.obj.get("no_interactive", False)
    path = settings_path()

    if path.is_file():
        try:
            settings = load_settings(path)
        except ConfigError as e:
            fail(str(e))
    elif no_interactive:
        if override is None:
            fail("Config file not found and --no-interactive specified")
        settings = Settings(nix_path=str(override))
    else:
        settings = prompt_settings()
        try:
            save_settings(settings, path)
        except ConfigError as e:
            fail(str(e))
        click.secho(f"💾 Settings saved to {path}", fg="cyan")

    if override is not None:
        settings = settings.model_copy(update={"nix_path": str(override)})
    return settings


@click.group()
def config() -> None:
    """declair settings — show, init."""


@config.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def config_show(as_json: bool) -> None:
    """Show the stored settings."""
    path = settings_path()
    try:
        settings = load_settings(path)
    except ConfigError as e:
        if as_json:
            click.echo(json.dumps({"error": str(e), "path": str(path)}, indent=2))
            return
        fail(str(e))

    if as_json:
        click.echo(json.dumps({"path": str(path), **settings.model_dump()}, indent=2))
        return

    click.secho(f"⚙️  {path}", fg="cyan", bold=True)
    for key, value in settings.model_dump().items():
        click.echo(f"   {key:<14} {value}")


@config.command("init")
@click.pass_context
def config_init(ctx: click.Context) -> None:
    """(Re)create the settings file interactively."""
    if ctx.obj.get("no_interactive"):
        fail("`config init` is interactive; drop --no-interactive")

    path = settings_path()
    if path.is_file() and not click.confirm(f"Overwrite {path}?", default=False):
        click.echo("Aborted")
        return

    settings = prompt_settings()
    try:
        save_settings(settings, path)
    except ConfigError as e:
        fail(str(e))
    click.secho(f"✅ Settings saved to {path}", fg="green", bold=True)
