"""
CLI commands for the package block — add, remove, list, search.

Thin wrappers over ``declair.core.services``.
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from declair.core.models.settings import Settings
from declair.ui.cli.config import ensure_settings, fail


def _resolve_nix_file(settings: Settings) -> Path:
    """Turn the configured nix_path into the file to edit."""
    from declair.core.services.nix_paths import (
        PathResolutionError,
        expand_tilde,
        resolve_nix_config,
    )

    expanded = expand_tilde(settings.nix_path)
    try:
        return resolve_nix_config(expanded)
    except PathResolutionError as e:
        fail(f"Failed to use path `{expanded}`: {e}")


def _choose(prompt: str, labels: list[str]) -> int:
    """Numbered pick list; returns the 0-based index."""
    for i, label in enumerate(labels, 1):
        click.echo(f"  {i:>3}) {label}")
    choice = click.prompt(prompt, type=click.IntRange(1, len(labels)), default=1)
    return choice - 1


def _search_and_pick(query: str | None, no_interactive: bool) -> str | None:
    """Package name to add: literal with --no-interactive, else picked from search."""
    from declair.core.services.package_search import PackageSearchError, search_packages

    if not query:
        if no_interactive:
            fail("No query provided and --no-interactive specified")
        query = click.prompt("Search for a package")

    if no_interactive:
        return query

    try:
        results = search_packages(query)
    except PackageSearchError as e:
        fail(f"Package search failed: {e}")

    if not results:
        click.echo("No results found")
        return None

    idx = _choose("Select a package", [r.label for r in results])
    return results[idx].name


def _maybe_rebuild(settings: Settings, nix_file: Path, no_rebuild: bool) -> None:
    """Run the configured rebuild unless told not to."""
    from declair.core.services.nix_paths import PathResolutionError, find_rebuild_root
    from declair.core.services.rebuild import run_rebuild

    if not settings.auto_rebuild:
        return
    if no_rebuild:
        click.echo("Skipping rebuild due to --no-rebuild flag")
        return

    try:
        root = find_rebuild_root(nix_file)
    except PathResolutionError as e:
        fail(str(e))

    click.secho("🔨 Rebuilding NixOS with the new configuration...", fg="cyan")
    result = run_rebuild(settings, root)
    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red", err=True)


# ── Act ─────────────────────────────────────────────────────────


@click.command()
@click.argument("package", required=False)
@click.option("--no-rebuild", is_flag=True, help="Don't rebuild even if settings request it.")
@click.pass_context
def add(ctx: click.Context, package: str | None, no_rebuild: bool) -> None:
    """Add a package to the `with pkgs; [ ... ]` block.

    PACKAGE is a search query, or the literal package name with
    --no-interactive.
    """
    from declair.core.services.block_editor import BlockEditError, insert_entry

    settings = ensure_settings(ctx)
    nix_file = _resolve_nix_file(settings)

    token = _search_and_pick(package, ctx.obj.get("no_interactive", False))
    if token is None:
        return

    try:
        backup = insert_entry(nix_file, token)
    except BlockEditError as e:
        fail(str(e))

    click.secho(f"✅ Added `{token}` to `{nix_file}`", fg="green", bold=True)
    if not ctx.obj.get("quiet"):
        click.echo(f"   Backup: {backup}")
    _maybe_rebuild(settings, nix_file, no_rebuild)
    click.echo("Done")


@click.command()
@click.argument("package", required=False)
@click.option("--no-rebuild", is_flag=True, help="Don't rebuild even if settings request it.")
@click.pass_context
def remove(ctx: click.Context, package: str | None, no_rebuild: bool) -> None:
    """Remove a package from the `with pkgs; [ ... ]` block.

    Without PACKAGE, pick one of the currently listed packages.
    """
    from declair.core.services.block_editor import (
        BlockEditError,
        list_file_entries,
        remove_entry,
    )

    settings = ensure_settings(ctx)
    nix_file = _resolve_nix_file(settings)

    token = package
    if not token:
        if ctx.obj.get("no_interactive"):
            fail("No package provided and --no-interactive specified")
        try:
            entries = list_file_entries(nix_file)
        except BlockEditError as e:
            fail(str(e))
        if not entries:
            click.echo(f"No packages to remove in {nix_file}")
            return
        token = entries[_choose("Select a package to remove", entries)]

    try:
        backup = remove_entry(nix_file, token)
    except BlockEditError as e:
        fail(str(e))

    click.secho(f"✅ Removed `{token}` from `{nix_file}`", fg="green", bold=True)
    if not ctx.obj.get("quiet"):
        click.echo(f"   Backup: {backup}")
    _maybe_rebuild(settings, nix_file, no_rebuild)
    click.echo("Done")


# ── Observe ─────────────────────────────────────────────────────


@click.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_packages(ctx: click.Context, as_json: bool) -> None:
    """List the packages currently in the block."""
    from declair.core.services.block_editor import BlockEditError, list_file_entries

    settings = ensure_settings(ctx)
    nix_file = _resolve_nix_file(settings)

    try:
        entries = list_file_entries(nix_file)
    except BlockEditError as e:
        fail(f"Failed to list packages: {e}")

    if as_json:
        click.echo(json.dumps({"source": str(nix_file), "packages": entries}, indent=2))
        return

    if not entries:
        click.echo(f"No packages found in `with pkgs; [...]` block of {nix_file}")
        return

    header_pkg, header_src = "Package", "Source"
    source = str(nix_file)
    w1 = max(len(header_pkg), *(len(e) for e in entries))
    w2 = max(len(header_src), len(source))

    click.echo(f"{header_pkg:<{w1}} | {header_src:<{w2}}")
    click.echo(f"{'-' * w1}-+-{'-' * w2}")
    for entry in entries:
        click.echo(f"{entry:<{w1}} | {source:<{w2}}")


@click.command()
@click.argument("query")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def search(query: str, as_json: bool) -> None:
    """Search nixpkgs without touching the configuration."""
    from declair.core.services.package_search import PackageSearchError, search_packages

    try:
        results = search_packages(query)
    except PackageSearchError as e:
        fail(f"Package search failed: {e}")

    if as_json:
        click.echo(json.dumps([r.model_dump() for r in results], indent=2))
        return

    if not results:
        click.echo("No results found")
        return

    click.secho(f"📦 Results ({len(results)}):", fg="cyan", bold=True)
    for r in results:
        click.echo(f"   {r.label}")
