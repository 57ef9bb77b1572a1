"""
ConfigStore — per-identity JSON persistence for NotificationConfig.

One document per identity at ``<storage_dir>/<identity>-config.json``.
Neither load() nor save() raises: a bad file loads as defaults and a
failed write is reported as False.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pydantic import ValidationError

from external_notify.notifications.config import NotificationConfig

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def safe_identity(identity: str) -> str:
    """Filesystem-safe form of an identity name."""
    cleaned = _UNSAFE.sub("_", identity.strip()).lstrip(".")
    return cleaned or "_"


class ConfigStore:
    def __init__(self, storage_dir: str | Path) -> None:
        self.storage_dir = Path(storage_dir).expanduser()

    def path_for(self, identity: str) -> Path:
        return self.storage_dir / f"{safe_identity(identity)}-config.json"

    def load(self, identity: str) -> NotificationConfig:
        path = self.path_for(identity)
        if not path.exists():
            logger.debug("No config for %s at %s, using defaults", identity, path)
            return NotificationConfig()

        try:
            config = NotificationConfig.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.error("Failed to load config from %s: %s", path, exc)
            return NotificationConfig()

        logger.debug("Loaded config for %s from %s", identity, path)
        return config

    def save(self, identity: str, config: NotificationConfig) -> bool:
        path = self.path_for(identity)
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(config.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save config to %s: %s", path, exc)
            return False
        logger.debug("Saved config for %s to %s", identity, path)
        return True
