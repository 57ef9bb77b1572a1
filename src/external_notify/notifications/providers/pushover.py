"""
Pushover provider — form POST to the Pushover messages API.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from external_notify.notifications.events import Notification
from external_notify.notifications.providers._http import request
from external_notify.notifications.schema import (
    ProviderSchema,
    int_between,
    is_string,
    string_length,
)

API_URL = "https://api.pushover.net/1/messages.json"

SCHEMA = ProviderSchema(
    name="pushover",
    display_name="Pushover",
    color="cyan",
    url="https://pushover.net/",
    register_url="https://pushover.net/signup",
    fields={
        "userKey": {
            "default": "",
            "example": "YOUR_30_CHARACTER_USER_KEY_XXX",
            "description": "Your Pushover user key (30 characters)",
            "required": True,
            "validation_error": "User key must be 30 characters",
            "validate": string_length(30),
        },
        "apiToken": {
            "default": "",
            "example": "YOUR_30_CHARACTER_APP_TOKEN_XX",
            "description": "Your application API token (30 characters)",
            "required": True,
            "validation_error": "API token must be 30 characters",
            "validate": string_length(30),
        },
        "priority": {
            "default": 0,
            "description": "Notification priority (-2 to 2)",
            "validation_error": "Priority must be an integer between -2 and 2",
            "validate": int_between(-2, 2),
        },
        "sound": {
            "default": "pushover",
            "description": "Notification sound name",
            "validation_error": "Sound must be a string",
            "validate": is_string,
        },
    },
    setup_instructions=(
        "Create an account at https://pushover.net/ and copy your user key",
        "Register an application at https://pushover.net/apps/build to get an API token",
        "Install the Pushover app on your device and sign in",
    ),
)


async def send(
    notification: Notification, config: Mapping[str, Any], client: httpx.AsyncClient
) -> None:
    await request(
        client,
        SCHEMA.display_name,
        "POST",
        API_URL,
        data={
            "token": config["apiToken"],
            "user": config["userKey"],
            "title": notification.title,
            "message": notification.message,
            "priority": str(config["priority"]),
            "sound": config["sound"],
            "timestamp": str(int(notification.timestamp.timestamp())),
        },
    )
