"""
Template rendering for notification titles, bodies and webhook payloads.

Templates use ``{{name}}`` placeholders. Rendering is a single pass, so a
value that itself contains ``{{...}}`` is never expanded again.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping

from external_notify.notifications.events import EventType, InboundEvent

if TYPE_CHECKING:
    from external_notify.notifications.config import FormatConfig

_PLACEHOLDER = re.compile(r"\{\{([^{}]+)\}\}")

# Channel names starting with these are multi-user channels; anything else
# is a private conversation.
CHANNEL_PREFIXES = ("#",)

PRIVATE_CHANNEL_LABEL = "PM"

DEFAULT_TITLE = "{{network}}"
DEFAULT_TITLE_WITH_CHANNEL = "{{network}} - {{channel}}"
DEFAULT_MESSAGE = "<{{nick}}> {{message}}"
DEFAULT_ACTION_MESSAGE = "* {{nick}} {{message}}"

TEMPLATE_VARIABLES = (
    "network",
    "server",
    "channel",
    "nick",
    "user",
    "message",
    "text",
    "date",
    "time",
    "timestamp",
    "type",
)


def render(template: Any, variables: Mapping[str, Any]) -> str:
    """Replace every ``{{name}}`` in *template* with ``variables[name]``.

    Unknown names and ``None`` values render as an empty string.
    """
    if not isinstance(template, str) or not template:
        return ""

    def substitute(match: re.Match[str]) -> str:
        value = variables.get(match.group(1).strip())
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(substitute, template)


def placeholders(template: str) -> list[str]:
    """Names referenced by a template, in order of first appearance."""
    seen: list[str] = []
    for match in _PLACEHOLDER.finditer(template):
        name = match.group(1).strip()
        if name not in seen:
            seen.append(name)
    return seen


def is_channel(name: str | None) -> bool:
    return bool(name) and name.startswith(CHANNEL_PREFIXES)  # type: ignore[union-attr]


def iso_timestamp(value: datetime) -> str:
    """Strict ISO-8601 in UTC with millisecond precision, e.g. ``2025-01-01T00:00:00.000Z``."""
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def template_variables(event: InboundEvent) -> dict[str, str]:
    """Variables available to title and message templates."""
    local = event.timestamp.astimezone()
    channel = event.channel if is_channel(event.channel) else PRIVATE_CHANNEL_LABEL

    return {
        "date": f"{local:%b} {local.day}, {local:%H:%M}",
        "time": f"{local:%H:%M}",
        "timestamp": iso_timestamp(event.timestamp),
        "nick": event.nick,
        "user": event.nick,
        "message": event.message,
        "text": event.message,
        "channel": channel,
        "network": event.network,
        "server": event.network,
        "type": event.type or EventType.MESSAGE.value,
    }


def select_title_template(fmt: FormatConfig, event: InboundEvent) -> str:
    if is_channel(event.channel) and fmt.title_with_channel:
        return fmt.title_with_channel
    return fmt.title


def select_message_template(fmt: FormatConfig, event: InboundEvent) -> str:
    if event.type == EventType.ACTION.value and fmt.action_message:
        return fmt.action_message
    return fmt.message


def default_format() -> FormatConfig:
    from external_notify.notifications.config import FormatConfig

    return FormatConfig()
