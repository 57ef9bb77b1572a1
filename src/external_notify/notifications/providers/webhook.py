"""
Generic webhook provider — send a templated body to any HTTP endpoint.

The body template uses the same ``{{name}}`` placeholders as notification
templates, with ``title``, ``message`` and ``timestamp`` available. When
the content type is JSON the values are escaped so that titles containing
quotes or newlines still produce a valid document.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

import httpx

from external_notify.notifications.events import Notification
from external_notify.notifications.providers._http import USER_AGENT, request
from external_notify.notifications.schema import (
    ProviderSchema,
    is_http_url,
    is_json_object,
    non_empty_string,
    one_of,
)
from external_notify.notifications.template import iso_timestamp, render

logger = logging.getLogger(__name__)

METHODS = ("GET", "POST", "PUT", "PATCH")
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

DEFAULT_BODY_TEMPLATE = (
    '{"title": "{{title}}", "message": "{{message}}", "timestamp": "{{timestamp}}"}'
)

_ANY_PLACEHOLDER = re.compile(r"\{\{[^}]+\}\}")


def is_json_template(value: Any) -> bool:
    """True when the template parses as JSON with every placeholder set to ``test``."""
    if not isinstance(value, str) or not value:
        return False
    try:
        json.loads(_ANY_PLACEHOLDER.sub("test", value))
    except json.JSONDecodeError:
        return False
    return True


SCHEMA = ProviderSchema(
    name="webhook",
    display_name="webhook",
    color="magenta",
    url="https://example.com/webhook",
    register_url="https://example.com/webhook",
    fields={
        "url": {
            "default": "",
            "example": "https://example.com/webhook",
            "description": "Webhook URL to send notifications to",
            "required": True,
            "validation_error": "URL must be a valid HTTPS or HTTP URL",
            "validate": is_http_url,
        },
        "method": {
            "default": "POST",
            "description": "HTTP method (GET, POST, PUT, PATCH)",
            "validation_error": "Method must be GET, POST, PUT, or PATCH",
            "validate": one_of(*METHODS),
        },
        "contentType": {
            "default": "application/json",
            "description": "Content-Type header",
            "validation_error": "Content-Type must be a string",
            "validate": non_empty_string,
        },
        "headers": {
            "default": "{}",
            "example": '{"Authorization": "Bearer YOUR_TOKEN"}',
            "description": "Custom headers as JSON string",
            "validation_error": "Headers must be valid JSON object",
            "validate": is_json_object,
        },
        "bodyTemplate": {
            "default": DEFAULT_BODY_TEMPLATE,
            "description": "Request body template; use {{title}}, {{message}}, {{timestamp}}",
            "validation_error": "Body template must be valid JSON",
            "validate": is_json_template,
        },
    },
    setup_instructions=(
        "Get a webhook URL from your service (Discord, Slack, Mattermost, ...)",
        "Add authentication with the headers setting, e.g."
        ' {"Authorization": "Bearer YOUR_TOKEN"}',
        'Discord body: {"content": "**{{title}}**\\n{{message}}"}',
        'Slack body: {"text": "{{title}}: {{message}}"}',
    ),
)


def _escape_json(value: str) -> str:
    return json.dumps(value)[1:-1]


def render_body(notification: Notification, config: Mapping[str, Any]) -> str:
    values = {
        "title": notification.title,
        "message": notification.message,
        "timestamp": iso_timestamp(notification.timestamp),
    }
    if "json" in str(config.get("contentType", "")).lower():
        values = {key: _escape_json(value) for key, value in values.items()}
    return render(config["bodyTemplate"], values)


def build_headers(config: Mapping[str, Any]) -> dict[str, str]:
    headers = {
        "Content-Type": config["contentType"],
        "User-Agent": USER_AGENT,
    }
    try:
        extra = json.loads(config.get("headers") or "{}")
    except json.JSONDecodeError as exc:
        logger.warning("webhook failed to parse custom headers: %s", exc)
        extra = {}
    if isinstance(extra, dict):
        headers.update({str(k): str(v) for k, v in extra.items()})
    return headers


async def send(
    notification: Notification, config: Mapping[str, Any], client: httpx.AsyncClient
) -> None:
    method = str(config["method"]).upper()
    kwargs: dict[str, Any] = {"headers": build_headers(config)}
    if method in BODY_METHODS:
        kwargs["content"] = render_body(notification, config).encode()

    await request(client, SCHEMA.display_name, method, config["url"], **kwargs)
