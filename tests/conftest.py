"""Pytest configuration and fixtures."""

import pytest
from pathlib import Path
import tempfile
import shutil
from datetime import datetime, timezone

from external_notify.core import AppSettings
from external_notify.core.context import IdentityContext
from external_notify.core.store import ConfigStore
from external_notify.notifications.events import InboundEvent


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test artifacts."""
    dirpath = tempfile.mkdtemp()
    yield Path(dirpath)
    shutil.rmtree(dirpath, ignore_errors=True)


@pytest.fixture
def store(temp_dir):
    return ConfigStore(temp_dir)


@pytest.fixture
def context(store):
    return IdentityContext("alice", store, settings=AppSettings(storage_dir=str(store.storage_dir)))


@pytest.fixture
def make_event():
    """Factory for highlighted channel messages."""

    def _make(**kwargs) -> InboundEvent:
        defaults = {
            "type": "message",
            "network": "Libera",
            "channel": "#python",
            "nick": "bob",
            "message": "alice: ping",
            "timestamp": datetime(2025, 1, 5, 14, 3, tzinfo=timezone.utc),
            "highlight": True,
        }
        defaults.update(kwargs)
        return InboundEvent(**defaults)

    return _make


@pytest.fixture
def pushover_service():
    return {
        "enabled": True,
        "userKey": "u" * 30,
        "apiToken": "t" * 30,
        "priority": 0,
        "sound": "pushover",
    }
