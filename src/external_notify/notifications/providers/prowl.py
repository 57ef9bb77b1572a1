"""
Prowl provider — iOS push notifications via the Prowl public API.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from external_notify.notifications.events import Notification
from external_notify.notifications.providers._http import request
from external_notify.notifications.schema import (
    ProviderSchema,
    int_between,
    string_length,
    string_length_between,
)

API_URL = "https://api.prowlapp.com/publicapi/add"

SCHEMA = ProviderSchema(
    name="prowl",
    display_name="Prowl",
    color="bright_green",
    url="https://www.prowlapp.com/",
    register_url="https://www.prowlapp.com/api_settings.php",
    fields={
        "apiKey": {
            "default": "",
            "example": "YOUR_40_CHARACTER_API_KEY",
            "description": "Your Prowl API key (40 characters)",
            "required": True,
            "validation_error": "API key must be 40 characters",
            "validate": string_length(40),
        },
        "priority": {
            "default": 0,
            "description": "Notification priority (-2 to 2)",
            "validation_error": "Priority must be an integer between -2 and 2",
            "validate": int_between(-2, 2),
        },
        "application": {
            "default": "TheLounge",
            "description": "Application name shown in notification",
            "validation_error": "Application name must be a non-empty string (max 256 chars)",
            "validate": string_length_between(1, 256),
        },
    },
    setup_instructions=(
        "Install Prowl from the App Store and sign in",
        "Generate an API key at https://www.prowlapp.com/api_settings.php",
        "Priority levels: -2 very low, -1 moderate, 0 normal, 1 high, 2 emergency",
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
            "apikey": config["apiKey"],
            "application": config["application"],
            "event": notification.title,
            "description": notification.message,
            "priority": str(config["priority"]),
        },
    )
