"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point declair's settings directory at a temp dir for every test."""
    cfg = tmp_path / "declair-config"
    monkeypatch.setenv("DECLAIR_CONFIG_DIR", str(cfg))
    monkeypatch.delenv("DECLAIR_LOG_FILE", raising=False)
    return cfg


@pytest.fixture
def write_nix(tmp_path: Path):
    """Write a configuration.nix with the given content and return its path."""

    def _write(content: str, name: str = "configuration.nix") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
