"""
Provider registry — the static table of known push providers.

Providers are registered explicitly here. Adding one means writing a
module under ``providers/`` with a ``SCHEMA`` and a ``send`` coroutine and
listing it below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from external_notify.notifications.notifier import DEFAULT_TIMEOUT, Notifier, Sender
from external_notify.notifications.providers import ntfy, prowl, pushover, webhook
from external_notify.notifications.schema import ProviderSchema


@dataclass(frozen=True)
class ProviderSpec:
    schema: ProviderSchema
    sender: Sender

    @property
    def name(self) -> str:
        return self.schema.name


PROVIDERS: dict[str, ProviderSpec] = {
    spec.name: spec
    for spec in (
        ProviderSpec(pushover.SCHEMA, pushover.send),
        ProviderSpec(ntfy.SCHEMA, ntfy.send),
        ProviderSpec(prowl.SCHEMA, prowl.send),
        ProviderSpec(webhook.SCHEMA, webhook.send),
    )
}


def available_providers() -> list[str]:
    return list(PROVIDERS)


def get_provider(name: str) -> ProviderSpec | None:
    """Look up a provider by id or display name, ignoring case."""
    wanted = name.strip().lower()
    if wanted in PROVIDERS:
        return PROVIDERS[wanted]
    for spec in PROVIDERS.values():
        if spec.schema.display_name.lower() == wanted:
            return spec
    return None


def build_notifier(
    name: str,
    service_config: Mapping[str, Any] | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    log: logging.Logger | None = None,
) -> Notifier | None:
    """Construct a notifier for *name*, or None when the provider is unknown."""
    spec = get_provider(name)
    if spec is None:
        return None
    return Notifier(spec.schema, service_config, spec.sender, timeout=timeout, log=log)


def metadata_notifier(name: str) -> Notifier | None:
    spec = get_provider(name)
    return Notifier.metadata(spec.schema) if spec else None
