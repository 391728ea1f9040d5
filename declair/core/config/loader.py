"""
Configuration loader — reads and writes config.yml.

The settings file lives in the user's config directory and records
where the Nix configuration is and how to rebuild after an edit.
It is read as YAML, validated against the Settings model, and
returned as a typed object.

Directory resolution, first match wins:
    DECLAIR_CONFIG_DIR  >  $XDG_CONFIG_HOME/declair  >  ~/.config/declair
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from declair.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "config.yml"
APP_NAME = "declair"


class ConfigError(Exception):
    """Raised when the settings file is invalid or missing."""


def config_dir() -> Path:
    """Directory holding declair's settings file."""
    override = os.environ.get("DECLAIR_CONFIG_DIR")
    if override:
        return Path(override).expanduser()

    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / APP_NAME


def settings_path() -> Path:
    """Full path of the settings file (may not exist yet)."""
    return config_dir() / SETTINGS_FILE


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate the settings file.

    Args:
        path: Explicit settings file. Defaults to ``settings_path()``.

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    path = path or settings_path()

    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.info("Loaded settings (nix_path=%s)", settings.nix_path)
    return settings


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Write settings as YAML, creating the config directory if needed.

    Returns:
        The path written.
    """
    path = path or settings_path()
    content = yaml.safe_dump(settings.model_dump(), sort_keys=False)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot write {path}: {e}") from e

    logger.info("Settings saved to %s", path)
    return path
