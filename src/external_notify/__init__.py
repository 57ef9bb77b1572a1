"""
external-notify — push notifications for chat highlights.

Decides which inbound chat events deserve a push notification, renders
them from templates and fans them out to the configured providers.
"""

__version__ = "0.1.0"
