"""
Settings model — persisted user preferences.

Loaded from config.yml in the user's config directory.  Answers two
questions: which Nix file holds the package block, and how (if at
all) the system is rebuilt after an edit.
"""

from __future__ import annotations

from pydantic import BaseModel


class Settings(BaseModel):
    """User preferences for declair."""

    nix_path: str
    auto_rebuild: bool = False
    home_manager: bool = False   # home-manager instead of nixos-rebuild
    flake: bool = False          # pass --flake . to the rebuild command
