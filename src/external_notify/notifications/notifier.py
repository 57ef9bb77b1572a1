"""
Notifier — the runtime binding of a ProviderSchema to a send strategy.

There is a single Notifier type. What differs between providers is data
(the schema) and one coroutine (the sender) that performs the HTTP call.

States:
    UNINITIALIZED -> METADATA -> ACTIVE

A notifier only becomes ACTIVE when its service config is enabled and
every field validates; otherwise it stays in METADATA mode, where schema
and help information is available but send() refuses to run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

import httpx

from external_notify.notifications.config import NotificationConfig
from external_notify.notifications.errors import (
    InvalidSettingValue,
    ProviderNotConfigured,
    UnknownSetting,
)
from external_notify.notifications.events import Notification
from external_notify.notifications.schema import ProviderSchema

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

Sender = Callable[[Notification, Mapping[str, Any], httpx.AsyncClient], Awaitable[None]]


def make_test_notification() -> Notification:
    return Notification(
        title="Test Notification",
        message="This is a test notification from external-notify",
    )


class NotifierState(str, Enum):
    UNINITIALIZED = "uninitialized"
    METADATA = "metadata"
    ACTIVE = "active"


@dataclass
class ConfigResult:
    """Outcome of a successful field mutation."""

    key: str
    value: Any
    auto_enabled: bool = False
    messages: list[str] = field(default_factory=list)


class Notifier:
    """A provider schema bound to one identity's service configuration."""

    def __init__(
        self,
        schema: ProviderSchema,
        config: Mapping[str, Any] | None = None,
        sender: Sender | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        log: logging.Logger | None = None,
    ) -> None:
        self.schema = schema
        self.config: dict[str, Any] = dict(config or {})
        self.sender = sender
        self.timeout = timeout
        self.logger = log or logger
        self.state = NotifierState.UNINITIALIZED
        self._client: httpx.AsyncClient | None = None
        self._load()

    @classmethod
    def metadata(cls, schema: ProviderSchema) -> Notifier:
        """A schema-only instance for help and status output."""
        return cls(schema)

    def _load(self) -> None:
        self.schema.apply_defaults(self.config)
        self.state = NotifierState.METADATA

        if self.config.get("enabled") is not True:
            self.logger.debug("%s not enabled in config", self.name)
            return
        if self.sender is None:
            return
        if self.validate_with_logging():
            self.state = NotifierState.ACTIVE

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def display_name(self) -> str:
        return self.schema.display_name

    @property
    def is_metadata_mode(self) -> bool:
        return self.state is not NotifierState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state is NotifierState.ACTIVE

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> bool:
        """Check every field silently."""
        return self.schema.is_valid(self.config)

    def validate_with_logging(self) -> bool:
        """Same check as validate(), logging the first failing field's error."""
        failure = next(self.schema.failures(self.config), None)
        if failure is None:
            return True
        key, descriptor = failure
        self.logger.error("%s: %s (%s)", self.display_name, descriptor.validation_error, key)
        return False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def handle_config(self, config: NotificationConfig, setting: str, value: str) -> ConfigResult:
        """Set one field of this provider's service config inside *config*.

        Raises UnknownSetting or InvalidSettingValue without touching the
        document. Auto-enables the service when the change makes it valid.
        """
        key = self.schema.resolve_key(setting)
        if key is None:
            raise UnknownSetting(self.display_name, setting, self.schema.field_names)

        parsed = self.schema.parse_value(key, value)
        descriptor = self.schema.fields[key]
        if not descriptor.accepts(parsed):
            raise InvalidSettingValue(key, descriptor.validation_error)

        service = config.services.setdefault(self.name, self.schema.default_service_config())
        service[key] = parsed

        result = ConfigResult(
            key=key,
            value=parsed,
            messages=[f"{self.display_name} setting {key} updated"],
        )
        if not service.get("enabled") and self.schema.is_valid(service):
            service["enabled"] = True
            result.auto_enabled = True
            result.messages.append(
                f"{self.display_name} service auto-enabled (all required fields are set)"
            )
        return result

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(self, notification: Notification) -> None:
        if not self.is_active or self.sender is None:
            raise ProviderNotConfigured(self.display_name)

        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            await self.sender(notification, self.config, client)
            self.logger.debug("%s notification sent", self.display_name)
        finally:
            if not self._client:
                await client.aclose()

    async def test(self) -> None:
        await self.send(make_test_notification())
