"""
IdentityContext — everything one identity needs to configure and dispatch.

A context owns the identity's NotificationConfig, the store it is
persisted to, the dispatch engine built from it, and a presence callable
that reports whether the user is away. Every configuration command
returns a CommandResult and persists the document on success.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from external_notify.core import AppSettings
from external_notify.core.store import ConfigStore
from external_notify.notifications.config import ChannelFilter, FilterConfig, FormatConfig, NotificationConfig
from external_notify.notifications.engine import DedupCache, DispatchEngine, DispatchResult
from external_notify.notifications.errors import (
    InvalidSettingValue,
    NotifyError,
    PersistenceFailure,
    UnknownSetting,
)
from external_notify.notifications.events import InboundEvent
from external_notify.notifications.notifier import Notifier
from external_notify.notifications.registry import get_provider

logger = logging.getLogger(__name__)

Presence = Callable[[], bool]

_FORMAT_SETTINGS = {
    "title": "title",
    "titlewithchannel": "title_with_channel",
    "message": "message",
    "actionmessage": "action_message",
}

_FORMAT_LABELS = {
    "title": "Title",
    "title_with_channel": "Channel title",
    "message": "Message",
    "action_message": "Action message",
}


def _never_away() -> bool:
    return False


@dataclass
class CommandResult:
    success: bool
    messages: list[str] = field(default_factory=list)
    auto_enabled: bool = False

    @classmethod
    def ok(cls, *messages: str, auto_enabled: bool = False) -> CommandResult:
        return cls(True, list(messages), auto_enabled)

    @classmethod
    def fail(cls, *messages: str) -> CommandResult:
        return cls(False, list(messages))


@dataclass
class ServiceStatus:
    name: str
    display_name: str
    enabled: bool
    configured: bool

    @property
    def label(self) -> str:
        if self.enabled and self.configured:
            return "enabled"
        if self.enabled:
            return "enabled but missing config"
        return "disabled"


@dataclass
class StatusReport:
    identity: str
    enabled: bool
    services: list[ServiceStatus]
    filters: FilterConfig
    format: FormatConfig
    active: list[str] = field(default_factory=list)


class IdentityContext:
    """Per-identity state: config, store, engine and presence."""

    def __init__(
        self,
        identity: str,
        store: ConfigStore,
        *,
        presence: Presence | None = None,
        settings: AppSettings | None = None,
    ) -> None:
        self.identity = identity
        self.store = store
        self.presence = presence or _never_away
        self.settings = settings or AppSettings()
        self.dedup = DedupCache(self.settings.dedup_interval)
        self.engine: DispatchEngine | None = None
        self._config: NotificationConfig | None = None

    @property
    def config(self) -> NotificationConfig:
        if self._config is None:
            self._config = self.store.load(self.identity)
            self._rebuild_engine()
        return self._config

    def _rebuild_engine(self) -> None:
        config = self.config
        if config.enabled:
            # Dedup state is shared across rebuilds.
            self.engine = DispatchEngine(
                config,
                dedup=self.dedup,
                send_timeout=self.settings.request_timeout,
            )
        else:
            self.engine = None

    def _commit(self, *messages: str, auto_enabled: bool = False) -> CommandResult:
        """Rebuild the engine and persist; in-memory changes are kept either way."""
        self._rebuild_engine()
        if not self.store.save(self.identity, self.config):
            error = PersistenceFailure(self.identity)
            logger.error("%s (identity %s)", error, self.identity)
            return CommandResult.fail(str(error))
        return CommandResult.ok(*messages, auto_enabled=auto_enabled)

    # ------------------------------------------------------------------
    # Enable / disable
    # ------------------------------------------------------------------

    def enable(self, service: str | None = None) -> CommandResult:
        if service is None:
            if not self.config.services:
                return CommandResult.fail(
                    "No notification services configured. Use setup <service> first."
                )
            self.config.enabled = True
            return self._commit("External notifications enabled")

        spec = get_provider(service)
        if spec is None:
            return CommandResult.fail(f"Unknown service: {service}")
        service_config = self.config.services.get(spec.name)
        if service_config is None:
            return CommandResult.fail(f"Service {spec.name} is not configured")
        if not spec.schema.is_valid(service_config):
            return CommandResult.fail(
                f"Cannot enable {spec.name}: missing required configuration",
                f"Use setup {spec.name} to see setup instructions",
            )

        service_config["enabled"] = True
        return self._commit(f"{spec.schema.display_name} service enabled")

    def disable(self, service: str | None = None) -> CommandResult:
        if service is None:
            self.config.enabled = False
            return self._commit("External notifications disabled")

        spec = get_provider(service)
        name = spec.name if spec else service.lower()
        service_config = self.config.services.get(name)
        if service_config is None:
            return CommandResult.fail(f"Service {name} is not configured")

        service_config["enabled"] = False
        display = spec.schema.display_name if spec else name
        return self._commit(f"{display} service disabled")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_service_field(self, service: str, setting: str, value: str) -> CommandResult:
        spec = get_provider(service)
        if spec is None:
            return CommandResult.fail(f"Unknown service: {service}")

        try:
            result = Notifier.metadata(spec.schema).handle_config(self.config, setting, value)
        except (UnknownSetting, InvalidSettingValue) as exc:
            return CommandResult.fail(str(exc))
        return self._commit(*result.messages, auto_enabled=result.auto_enabled)

    def set_filter(self, setting: str, value: str) -> CommandResult:
        filters = self.config.filters
        key = setting.lower()

        if key in ("onlywhenaway", "highlights"):
            lowered = value.strip().lower()
            if lowered not in ("true", "false"):
                return CommandResult.fail("Value must be true or false")
            flag = lowered == "true"
            if key == "onlywhenaway":
                filters.only_when_away = flag
                label = "Only notify when away"
            else:
                filters.highlights = flag
                label = "Notify on highlights"
            return self._commit(f"{label}: {'enabled' if flag else 'disabled'}")

        if key in ("whitelist", "blacklist"):
            channels = [c.strip() for c in value.split(",") if c.strip()]
            if filters.channels is None:
                filters.channels = ChannelFilter()
            setattr(filters.channels, key, channels)
            shown = ", ".join(channels) if channels else "cleared"
            return self._commit(f"Channel {key}: {shown}")

        return CommandResult.fail(
            f"Unknown filter setting: {setting}",
            "Valid settings: onlyWhenAway, highlights, whitelist, blacklist",
        )

    def set_format(self, setting: str, value: str) -> CommandResult:
        key = setting.lower()
        if key == "reset":
            return self.reset_format()

        attr = _FORMAT_SETTINGS.get(key)
        if attr is None:
            return CommandResult.fail(
                f"Unknown format setting: {setting}",
                "Valid settings: title, titleWithChannel, message, actionMessage, reset",
            )
        setattr(self.config.format, attr, value)
        return self._commit(f"{_FORMAT_LABELS[attr]} format updated to: {value}")

    def reset_format(self) -> CommandResult:
        fmt = FormatConfig()
        self.config.format = fmt
        return self._commit(
            "Format templates reset to defaults",
            f"Title: {fmt.title}",
            f"Message: {fmt.message}",
            f"Action: {fmt.action_message}",
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> StatusReport:
        config = self.config
        services = []
        for name, service_config in config.services.items():
            spec = get_provider(name)
            services.append(
                ServiceStatus(
                    name=name,
                    display_name=spec.schema.display_name if spec else name,
                    enabled=bool(service_config.get("enabled", False)),
                    configured=spec.schema.is_valid(service_config) if spec else False,
                )
            )
        return StatusReport(
            identity=self.identity,
            enabled=config.enabled,
            services=services,
            filters=config.filters,
            format=config.format,
            active=self.engine.active_services if self.engine else [],
        )

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def test(self, service: str | None = None) -> CommandResult:
        if not self.config.enabled or self.engine is None:
            return CommandResult.fail("Notifications are not enabled. Use enable first.")

        try:
            result = await self.engine.send_test_notification(service)
        except (NotifyError, asyncio.TimeoutError) as exc:
            reason = str(exc) or "timed out"
            return CommandResult.fail(f"Failed to send test notification: {reason}")

        if service is not None:
            return CommandResult.ok(f"Test notification sent via {result.services[0]}!")

        if not result.services and not result.failures:
            return CommandResult.fail("No active notification services")
        messages = []
        if result.services:
            messages.append(f"Test notification sent to: {', '.join(result.services)}")
        messages.extend(f"{name} failed: {reason}" for name, reason in result.failures.items())
        return CommandResult(not result.failures, messages)

    async def handle_event(
        self, event: InboundEvent, away: bool | None = None
    ) -> DispatchResult | None:
        """Run one event through the engine; None when disabled, filtered or duplicate."""
        if not self.config.enabled or self.engine is None:
            return None
        if away is None:
            away = self.presence()
        return await self.engine.process_message(event, away)
