"""
Notification events — the data flowing through the notification system.

Defines the inbound chat event delivered by the host client and the
immutable Notification handed to providers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    MESSAGE = "message"
    ACTION = "action"
    NOTICE = "notice"


NOTIFIABLE_TYPES = frozenset(t.value for t in EventType)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InboundEvent(BaseModel):
    """A chat message already classified by the host client.

    The host owns highlight detection; ``highlight`` arrives precomputed.
    ``type`` is kept as a plain string so that unsupported types can be
    represented and rejected by the engine instead of failing validation.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = EventType.MESSAGE.value
    network: str = ""
    channel: str = ""
    nick: str = ""
    message: str = ""
    timestamp: datetime = Field(default_factory=_now)
    highlight: bool = False
    is_self: bool = Field(default=False, alias="self")


class Notification(BaseModel):
    """A rendered notification, ready for delivery."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    timestamp: datetime = Field(default_factory=_now)
