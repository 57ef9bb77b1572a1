"""
ntfy provider — JSON POST to a topic on ntfy.sh or a self-hosted server.
"""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlparse

import httpx

from external_notify.notifications.events import Notification
from external_notify.notifications.providers._http import request
from external_notify.notifications.schema import (
    ProviderSchema,
    int_between,
    is_http_url,
    is_string,
    non_empty_string,
)

SCHEMA = ProviderSchema(
    name="ntfy",
    display_name="ntfy",
    color="green",
    url="https://ntfy.sh/",
    register_url="https://ntfy.sh/",
    fields={
        "server": {
            "default": "https://ntfy.sh",
            "description": "ntfy server URL",
            "validation_error": "Server must be a valid HTTP or HTTPS URL",
            "validate": is_http_url,
        },
        "topic": {
            "default": "",
            "example": "external-notify-yourname",
            "description": "Topic to publish to",
            "required": True,
            "validation_error": "Topic must be a non-empty string",
            "validate": non_empty_string,
        },
        "priority": {
            "default": 3,
            "description": "Notification priority (1 to 5)",
            "validation_error": "Priority must be an integer between 1 and 5",
            "validate": int_between(1, 5),
        },
        "tags": {
            "default": "",
            "example": "irc,chat",
            "description": "Comma-separated tags",
            "validation_error": "Tags must be a comma-separated string",
            "validate": is_string,
        },
    },
    setup_instructions=(
        "Choose a unique topic name, e.g. external-notify-yourname",
        "Optionally self-host a server: https://docs.ntfy.sh/install/",
        "Install the ntfy app and subscribe to your topic",
        "Topics on the public ntfy.sh server are not password-protected;"
        " anyone who knows the name can read them",
    ),
)


def topic_url(server: str, topic: str) -> str:
    parsed = urlparse(server)
    return f"{parsed.scheme}://{parsed.netloc}/{topic}"


def split_tags(tags: Any) -> list[str]:
    if isinstance(tags, (list, tuple)):
        return [str(t).strip() for t in tags if str(t).strip()]
    if not tags:
        return []
    return [t.strip() for t in str(tags).split(",") if t.strip()]


async def send(
    notification: Notification, config: Mapping[str, Any], client: httpx.AsyncClient
) -> None:
    payload: dict[str, Any] = {
        "message": notification.message,
        "title": notification.title,
        "priority": config["priority"],
    }
    tags = split_tags(config.get("tags"))
    if tags:
        payload["tags"] = tags

    await request(
        client,
        SCHEMA.display_name,
        "POST",
        topic_url(config["server"], config["topic"]),
        json=payload,
    )
