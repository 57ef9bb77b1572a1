"""
Core configuration and utilities for external-notify.

Provides:
- Path constants (EXTERNAL_NOTIFY_HOME, SETTINGS_FILE, etc.)
- Application settings model (AppSettings)
- Settings loading/saving functions
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

EXTERNAL_NOTIFY_HOME: Path = Path.home() / ".external-notify"
SETTINGS_FILE: Path = EXTERNAL_NOTIFY_HOME / "settings.yaml"
DEFAULT_STORAGE_DIR: Path = EXTERNAL_NOTIFY_HOME / "identities"


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class AppSettings(BaseModel):
    """Process-wide settings, shared by every identity."""

    storage_dir: str = str(DEFAULT_STORAGE_DIR)
    default_identity: str = "default"
    request_timeout: float = 10.0
    dedup_interval: float = 60.0
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Settings loading/saving
# ---------------------------------------------------------------------------


def load_settings(path: Path | None = None) -> AppSettings:
    """Load settings from YAML, or return defaults."""
    path = path or SETTINGS_FILE
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text())
            return AppSettings(**(data or {}))
        except (OSError, TypeError, yaml.YAMLError, ValidationError):
            logger.warning("Ignoring unreadable settings file %s", path, exc_info=True)
    return AppSettings()


def save_settings(settings: AppSettings, path: Path | None = None) -> None:
    """Save settings to YAML."""
    path = path or SETTINGS_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(settings.model_dump(), default_flow_style=False))


__all__ = [
    "EXTERNAL_NOTIFY_HOME",
    "SETTINGS_FILE",
    "DEFAULT_STORAGE_DIR",
    "AppSettings",
    "load_settings",
    "save_settings",
]
