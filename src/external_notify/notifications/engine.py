"""
DispatchEngine — filter, deduplicate, format and fan out chat events.

One engine serves one identity. Everything up to and including recording
the dedup key happens without an intervening await, so two coroutines
handling the same event on one loop cannot both get past the dedup check.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from external_notify.notifications.config import NotificationConfig
from external_notify.notifications.errors import ProviderNotConfigured
from external_notify.notifications.events import (
    NOTIFIABLE_TYPES,
    InboundEvent,
    Notification,
)
from external_notify.notifications.notifier import (
    DEFAULT_TIMEOUT,
    Notifier,
    make_test_notification,
)
from external_notify.notifications.registry import build_notifier, get_provider
from external_notify.notifications.template import (
    render,
    select_message_template,
    select_title_template,
    template_variables,
)

logger = logging.getLogger(__name__)

DEDUP_INTERVAL = 60.0
DEDUP_MESSAGE_PREFIX = 50


class DedupCache:
    """Set of recently seen keys, emptied in bulk once per interval.

    Cycles are aligned to the cache's creation time; the clock is checked
    lazily on each access. A key is therefore suppressed for anywhere
    between zero and ``interval`` seconds, depending on where in the cycle
    it was first seen.
    """

    def __init__(
        self,
        interval: float = DEDUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._keys: set[str] = set()
        self._cycle_start = clock()

    def _expire(self) -> None:
        elapsed = self._clock() - self._cycle_start
        if elapsed >= self.interval:
            cycles = int(elapsed // self.interval)
            self._cycle_start += cycles * self.interval
            if self._keys:
                logger.debug("Clearing %d dedup keys", len(self._keys))
            self._keys.clear()

    def __contains__(self, key: str) -> bool:
        self._expire()
        return key in self._keys

    def __len__(self) -> int:
        self._expire()
        return len(self._keys)

    def add(self, key: str) -> bool:
        """Record *key*; False if it was already present in this cycle."""
        self._expire()
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def clear(self) -> None:
        self._keys.clear()


@dataclass
class DispatchResult:
    """What happened to one notification."""

    notification: Notification
    services: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def delivered(self) -> bool:
        return bool(self.services)


class DispatchEngine:
    """Turns inbound events into notifications on every active provider."""

    def __init__(
        self,
        config: NotificationConfig,
        *,
        notifiers: list[Notifier] | None = None,
        dedup: DedupCache | None = None,
        send_timeout: float = DEFAULT_TIMEOUT,
        log: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.send_timeout = send_timeout
        self.logger = log or logger
        self.dedup = dedup if dedup is not None else DedupCache()
        if notifiers is None:
            notifiers = self._build_notifiers()
        self.notifiers: dict[str, Notifier] = {
            n.name: n for n in notifiers if n.is_active
        }

    def _build_notifiers(self) -> list[Notifier]:
        built = []
        for name, service in self.config.services.items():
            if not service.get("enabled"):
                continue
            notifier = build_notifier(name, service, timeout=self.send_timeout, log=self.logger)
            if notifier is None:
                self.logger.warning("Unknown notification service in config: %s", name)
                continue
            if notifier.is_active:
                self.logger.info("%s notifier initialized", notifier.display_name)
            else:
                self.logger.warning("%s is enabled but not valid; skipping", notifier.display_name)
            built.append(notifier)
        return built

    @property
    def active_services(self) -> list[str]:
        return list(self.notifiers)

    # ------------------------------------------------------------------
    # Filtering and formatting
    # ------------------------------------------------------------------

    def should_notify(self, event: InboundEvent, away: bool) -> bool:
        if event.is_self or event.type not in NOTIFIABLE_TYPES:
            return False

        filters = self.config.filters
        if filters.only_when_away and not away:
            return False

        if filters.highlights and event.highlight:
            channels = filters.channels
            if channels is not None:
                name = event.channel.casefold()
                if name in {c.casefold() for c in channels.blacklist}:
                    return False
                whitelist = {c.casefold() for c in channels.whitelist}
                if whitelist and name not in whitelist:
                    return False
            return True

        return False

    @staticmethod
    def get_deduplication_key(event: InboundEvent) -> str:
        return (
            f"{event.network}-{event.channel}-{event.nick}-"
            f"{event.message[:DEDUP_MESSAGE_PREFIX]}"
        )

    def format_notification(self, event: InboundEvent) -> Notification:
        fmt = self.config.format
        variables = template_variables(event)
        return Notification(
            title=render(select_title_template(fmt, event), variables),
            message=render(select_message_template(fmt, event), variables),
            timestamp=event.timestamp,
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def process_message(self, event: InboundEvent, away: bool) -> DispatchResult | None:
        """Handle one event. Returns None when it was filtered or a duplicate."""
        if not self.should_notify(event, away):
            return None

        key = self.get_deduplication_key(event)
        if not self.dedup.add(key):
            self.logger.debug("Skipping duplicate notification: %s", key)
            return None

        notification = self.format_notification(event)
        if not self.notifiers:
            self.logger.debug("No active notifiers; dropping notification")
            return DispatchResult(notification)

        return await self._fan_out(notification)

    async def send_test_notification(self, service: str | None = None) -> DispatchResult:
        """Send a test notification to one service, or to all active ones.

        With a service name, delivery errors propagate to the caller.
        """
        notification = make_test_notification()
        if service is None:
            return await self._fan_out(notification)

        spec = get_provider(service)
        name = spec.name if spec else service.lower()
        notifier = self.notifiers.get(name)
        if notifier is None:
            raise ProviderNotConfigured(spec.schema.display_name if spec else service)

        await asyncio.wait_for(notifier.send(notification), timeout=self.send_timeout)
        return DispatchResult(notification, services=[notifier.name])

    async def _fan_out(self, notification: Notification) -> DispatchResult:
        names = list(self.notifiers)
        outcomes = await asyncio.gather(
            *(self._safe_send(self.notifiers[name], notification) for name in names)
        )

        result = DispatchResult(notification)
        for name, error in zip(names, outcomes):
            if error is None:
                result.services.append(name)
            else:
                result.failures[name] = error
        return result

    async def _safe_send(self, notifier: Notifier, notification: Notification) -> str | None:
        """Send with error handling so one provider failure doesn't break others."""
        try:
            await asyncio.wait_for(notifier.send(notification), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            self.logger.error("%s timed out after %.1fs", notifier.display_name, self.send_timeout)
            return f"timed out after {self.send_timeout:g}s"
        except Exception as exc:
            self.logger.exception("Failed to send to %s", notifier.display_name)
            return str(exc) or type(exc).__name__
        return None

    async def connect_all(self) -> None:
        for notifier in self.notifiers.values():
            try:
                await notifier.connect()
            except Exception:
                self.logger.exception("Failed to connect %s", notifier.display_name)

    async def disconnect_all(self) -> None:
        for notifier in self.notifiers.values():
            try:
                await notifier.disconnect()
            except Exception:
                self.logger.exception("Failed to disconnect %s", notifier.display_name)
