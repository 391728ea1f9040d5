"""
Package search — query nixpkgs through ``nix search``.

Runs the nix CLI with JSON output and decodes each record into a
typed ``SearchResult``.  Every failure (missing binary, timeout,
non-zero exit, bad JSON, bad record) surfaces as PackageSearchError.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess

from pydantic import ValidationError

from declair.core.models.package import PackageInfo, SearchResult

logger = logging.getLogger(__name__)

NIX_SEARCH_ARGS = (
    "search",
    "nixpkgs",
)
NIX_FEATURE_ARGS = (
    "--json",
    "--extra-experimental-features",
    "nix-command flakes",
)


class PackageSearchError(Exception):
    """Raised when searching nixpkgs fails."""


def search_command(query: str) -> list[str]:
    """Build the argv for a nix search."""
    return ["nix", *NIX_SEARCH_ARGS, query, *NIX_FEATURE_ARGS]


def parse_search_output(raw: str) -> list[SearchResult]:
    """Decode ``nix search --json`` output, sorted by attribute path.

    Raises:
        PackageSearchError: Output is not a JSON object of package records.
    """
    try:
        data = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as e:
        raise PackageSearchError(f"JSON parsing error: {e}") from e

    if not isinstance(data, dict):
        raise PackageSearchError(
            f"JSON parsing error: expected an object, got {type(data).__name__}"
        )

    results: list[SearchResult] = []
    for attr_path in sorted(data):
        try:
            info = PackageInfo.model_validate(data[attr_path])
        except ValidationError as e:
            raise PackageSearchError(f"Invalid record for `{attr_path}`: {e}") from e
        results.append(SearchResult(attr_path=attr_path, package=info))
    return results


def search_packages(query: str, timeout: int = 120) -> list[SearchResult]:
    """Search nixpkgs for ``query``.

    Raises:
        PackageSearchError: The search could not be run or decoded.
    """
    if shutil.which("nix") is None:
        raise PackageSearchError("Failed to run `nix search`: nix not found in PATH")

    cmd = search_command(query)
    logger.debug("Executing: %s", " ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise PackageSearchError(f"`nix search` timed out after {timeout}s") from e
    except OSError as e:
        raise PackageSearchError(f"Failed to run `nix search`: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.strip()
        detail = f": {stderr}" if stderr else ""
        raise PackageSearchError(
            f"Error while running `nix search` (exit code {result.returncode}){detail}"
        )

    results = parse_search_output(result.stdout)
    logger.info("nix search %r: %d result(s)", query, len(results))
    return results
