"""
Package models — records decoded from ``nix search --json``.

The search output is a mapping of attribute path to package record:

    {"legacyPackages.x86_64-linux.ripgrep": {
        "pname": "ripgrep", "version": "14.1.0", "description": "..."}}
"""

from __future__ import annotations

from pydantic import BaseModel


class PackageInfo(BaseModel):
    """One package as reported by nix search."""

    pname: str
    version: str
    description: str | None = None


class SearchResult(BaseModel):
    """A package together with its attribute path."""

    attr_path: str
    package: PackageInfo

    @property
    def name(self) -> str:
        return self.package.pname

    @property
    def label(self) -> str:
        """Selection-list text: ``pname version: description``."""
        desc = self.package.description or ""
        return f"{self.package.pname} {self.package.version}: {desc}"
