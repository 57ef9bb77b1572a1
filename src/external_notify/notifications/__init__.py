"""
Notification system for external-notify.

Filters chat events, deduplicates them, renders them through templates
and fans them out to configured push providers.
"""

from external_notify.notifications.config import (
    ChannelFilter,
    FilterConfig,
    FormatConfig,
    NotificationConfig,
)
from external_notify.notifications.engine import DedupCache, DispatchEngine, DispatchResult
from external_notify.notifications.events import EventType, InboundEvent, Notification
from external_notify.notifications.notifier import ConfigResult, Notifier, NotifierState
from external_notify.notifications.registry import PROVIDERS, ProviderSpec, get_provider
from external_notify.notifications.schema import FieldDescriptor, ProviderSchema

__all__ = [
    "ChannelFilter",
    "ConfigResult",
    "DedupCache",
    "DispatchEngine",
    "DispatchResult",
    "EventType",
    "FieldDescriptor",
    "FilterConfig",
    "FormatConfig",
    "InboundEvent",
    "Notification",
    "NotificationConfig",
    "Notifier",
    "NotifierState",
    "PROVIDERS",
    "ProviderSchema",
    "ProviderSpec",
    "get_provider",
]
