"""
Error taxonomy for the notification system.

Every error renders as a short human-readable string so the command
layer can show it to the user unchanged.
"""

from __future__ import annotations


class NotifyError(Exception):
    """Base class for notification errors."""


class ConfigInvalid(NotifyError):
    """A configuration document or value failed validation."""


class InvalidSettingValue(ConfigInvalid):
    """A value submitted for a provider field was rejected."""

    def __init__(self, setting: str, reason: str) -> None:
        self.setting = setting
        self.reason = reason
        super().__init__(reason)


class UnknownSetting(NotifyError):
    """A configuration mutation named a field the provider does not declare."""

    def __init__(self, provider: str, setting: str, valid: list[str]) -> None:
        self.provider = provider
        self.setting = setting
        self.valid = list(valid)
        super().__init__(
            f"Unknown {provider} setting: {setting}. "
            f"Valid settings: {', '.join(self.valid)}"
        )


class ProviderNotConfigured(NotifyError):
    """send() was called on a notifier that is still in metadata mode."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} notifier is not properly configured")


class ProviderTransportError(NotifyError):
    """The provider's network call failed or returned a non-2xx status."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = message
        super().__init__(f"{provider} error: {message}")


class PersistenceFailure(NotifyError):
    """The config store could not write the configuration document."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__("Failed to save configuration")
