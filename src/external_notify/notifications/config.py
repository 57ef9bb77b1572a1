"""
Configuration models for the notification system.

Documents are validated leniently: a missing or malformed field is
replaced by its default, field by field, so a loaded configuration is
always fully populated. Keys are persisted in camelCase.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel

from external_notify.notifications.template import (
    DEFAULT_ACTION_MESSAGE,
    DEFAULT_MESSAGE,
    DEFAULT_TITLE,
    DEFAULT_TITLE_WITH_CHANNEL,
)

logger = logging.getLogger(__name__)


class _LenientModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="wrap")
    @classmethod
    def _default_on_error(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError:
            logger.debug("Replacing invalid %s.%s with default", cls.__name__, info.field_name)
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)


class ChannelFilter(_LenientModel):
    """Optional per-channel gate applied to highlight notifications."""

    whitelist: list[str] = Field(default_factory=list)
    blacklist: list[str] = Field(default_factory=list)


class FilterConfig(_LenientModel):
    only_when_away: bool = Field(default=True, strict=True)
    highlights: bool = Field(default=True, strict=True)
    channels: ChannelFilter | None = None


class FormatConfig(_LenientModel):
    title: str = DEFAULT_TITLE
    title_with_channel: str = DEFAULT_TITLE_WITH_CHANNEL
    message: str = DEFAULT_MESSAGE
    action_message: str = DEFAULT_ACTION_MESSAGE


class NotificationConfig(_LenientModel):
    """Top-level notification configuration for one identity."""

    enabled: bool = Field(default=False, strict=True)
    services: dict[str, dict[str, Any]] = Field(default_factory=dict)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    format: FormatConfig = Field(default_factory=FormatConfig)

    @field_validator("services", mode="before")
    @classmethod
    def _clean_services(cls, value: Any) -> dict[str, dict[str, Any]]:
        # Service ids are lowercase; entries that are not mappings are dropped.
        if not isinstance(value, dict):
            return {}
        services = {}
        for name, service in value.items():
            if not isinstance(service, dict):
                continue
            service = dict(service)
            if "enabled" in service and not isinstance(service["enabled"], bool):
                logger.debug("Replacing invalid services.%s.enabled with False", name)
                service["enabled"] = False
            services[str(name).lower()] = service
        return services

    @classmethod
    def from_document(cls, data: Any) -> NotificationConfig:
        """Build a fully defaulted config from any decoded document."""
        if not isinstance(data, dict):
            return cls()
        return cls.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
