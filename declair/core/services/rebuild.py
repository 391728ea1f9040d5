"""
System rebuild — apply the edited configuration.

Chooses between ``nixos-rebuild`` and ``home-manager`` (with or
without ``--flake .``) from the user's settings and runs it in the
foreground so sudo prompts and build output reach the terminal.
A failed rebuild is reported, never raised: the edit itself already
succeeded.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from declair.core.models.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class RebuildResult:
    """Outcome of a rebuild run."""

    command: list[str] = field(default_factory=list)
    returncode: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "command": " ".join(self.command),
            "returncode": self.returncode,
            "error": self.error,
        }


def rebuild_command(settings: Settings) -> list[str]:
    """The argv that applies the configuration."""
    if settings.home_manager:
        cmd = ["home-manager", "switch"]
    else:
        cmd = ["sudo", "nixos-rebuild", "switch"]
    if settings.flake:
        cmd += ["--flake", "."]
    return cmd


def run_rebuild(settings: Settings, cwd: Path) -> RebuildResult:
    """Run the rebuild in ``cwd``, inheriting stdin/stdout/stderr."""
    cmd = rebuild_command(settings)
    logger.debug("Executing: %s (cwd=%s)", " ".join(cmd), cwd)

    try:
        proc = subprocess.run(cmd, cwd=str(cwd), check=False)
    except OSError as e:
        logger.error("Cannot run %s: %s", cmd[0], e)
        return RebuildResult(command=cmd, returncode=127, error=str(e))

    result = RebuildResult(command=cmd, returncode=proc.returncode)
    if not result.ok:
        result.error = f"`{' '.join(cmd)}` exited with code {proc.returncode}"
        logger.error("Rebuild failed: %s", result.error)
    else:
        logger.info("Rebuild finished: %s", " ".join(cmd))
    return result
