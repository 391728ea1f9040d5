"""
Nix path resolution — from a user-supplied path to the file to edit.

Handles ``~`` expansion, picks a likely configuration file when given
a directory, and finds the directory a rebuild should run from (the
enclosing git work tree, so that ``--flake .`` sees the whole flake).
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

# Checked in order when the configured path is a directory
CANDIDATE_FILES = (
    "configuration.nix",
    "flake.nix",
    "default.nix",
    "home.nix",
    "pkgs.nix",
)


class PathResolutionError(Exception):
    """Raised when a configured path cannot be turned into a Nix file."""


def expand_tilde(raw: str) -> Path:
    """Expand a leading ``~`` to the home directory."""
    raw = raw.strip()
    if raw == "~":
        return Path.home()
    if raw.startswith("~/"):
        return Path.home() / raw[2:]
    return Path(raw)


def resolve_nix_config(path: Path) -> Path:
    """Return the Nix file to edit for ``path``.

    A file is returned unchanged. A directory is searched for the
    first existing entry of ``CANDIDATE_FILES``.

    Raises:
        PathResolutionError: Nothing usable at ``path``.
    """
    if path.is_file():
        return path

    if path.is_dir():
        for name in CANDIDATE_FILES:
            candidate = path / name
            if candidate.is_file():
                logger.debug("Using %s from directory %s", name, path)
                return candidate
        raise PathResolutionError(
            f"The specified directory `{path}` does not contain any of the "
            f"expected files: {', '.join(CANDIDATE_FILES)}"
        )

    raise PathResolutionError(f"File or directory `{path}` not found.")


def run_git(
    *args: str,
    cwd: Path,
    timeout: int = 15,
) -> subprocess.CompletedProcess[str]:
    """Run a git command and return the result."""
    return subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def find_rebuild_root(path: Path) -> Path:
    """Directory the rebuild command should run in.

    The git work tree containing ``path`` when there is one; otherwise
    the directory itself, or the parent of a file.

    Raises:
        PathResolutionError: ``path`` does not exist.
    """
    if not path.exists():
        raise PathResolutionError(f"Path `{path}` does not exist")

    directory = path if path.is_dir() else path.parent

    if shutil.which("git") is not None:
        try:
            r = run_git("rev-parse", "--show-toplevel", cwd=directory)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("git lookup failed in %s: %s", directory, e)
        else:
            if r.returncode == 0 and r.stdout.strip():
                return Path(r.stdout.strip())

    return directory
