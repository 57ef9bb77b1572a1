"""Tests for the per-identity command surface."""

from unittest.mock import AsyncMock, patch

import pytest

from external_notify.core import AppSettings
from external_notify.core.context import IdentityContext
from external_notify.notifications.errors import ProviderTransportError

USER = "u" * 30
TOKEN = "t" * 30


def _configure_pushover(context: IdentityContext) -> None:
    context.set_service_field("pushover", "userKey", USER)
    context.set_service_field("pushover", "apiToken", TOKEN)


# ---------------------------------------------------------------------------
# Service configuration
# ---------------------------------------------------------------------------


class TestServiceConfig:
    def test_set_field_persists(self, context, store):
        result = context.set_service_field("pushover", "userKey", USER)
        assert result.success
        assert store.load("alice").services["pushover"]["userKey"] == USER

    def test_auto_enable_reported(self, context):
        context.set_service_field("pushover", "userKey", USER)
        result = context.set_service_field("Pushover", "APITOKEN", TOKEN)
        assert result.success
        assert result.auto_enabled
        assert context.config.services["pushover"]["enabled"] is True

    def test_unknown_setting(self, context, store):
        result = context.set_service_field("pushover", "volume", "11")
        assert not result.success
        assert "Unknown Pushover setting: volume" in result.messages[0]
        assert not store.path_for("alice").exists()

    def test_invalid_value(self, context):
        result = context.set_service_field("ntfy", "priority", "9")
        assert not result.success
        assert result.messages == ["Priority must be an integer between 1 and 5"]

    def test_unknown_service(self, context):
        result = context.set_service_field("pigeon", "x", "y")
        assert not result.success

    def test_save_failure_keeps_memory_state(self, context):
        with patch.object(context.store, "save", return_value=False):
            result = context.set_service_field("pushover", "userKey", USER)
        assert not result.success
        assert result.messages == ["Failed to save configuration"]
        assert context.config.services["pushover"]["userKey"] == USER


# ---------------------------------------------------------------------------
# Enable / disable
# ---------------------------------------------------------------------------


class TestEnableDisable:
    def test_global_enable_requires_services(self, context):
        result = context.enable()
        assert not result.success
        assert "No notification services configured" in result.messages[0]
        assert context.config.enabled is False

    def test_global_enable_builds_engine(self, context, store):
        _configure_pushover(context)
        result = context.enable()
        assert result.success
        assert context.engine is not None
        assert context.engine.active_services == ["pushover"]
        assert store.load("alice").enabled is True

    def test_global_disable_drops_engine(self, context):
        _configure_pushover(context)
        context.enable()
        result = context.disable()
        assert result.success
        assert context.engine is None

    def test_service_enable_requires_valid_config(self, context):
        context.set_service_field("pushover", "userKey", USER)
        result = context.enable("pushover")
        assert not result.success
        assert "missing required configuration" in result.messages[0]

    def test_service_enable_not_configured(self, context):
        result = context.enable("ntfy")
        assert not result.success
        assert result.messages == ["Service ntfy is not configured"]

    def test_service_disable_and_enable(self, context):
        _configure_pushover(context)
        context.enable()
        assert context.disable("pushover").success
        assert context.engine.active_services == []
        assert context.enable("PUSHOVER").success
        assert context.engine.active_services == ["pushover"]

    def test_engine_rebuild_keeps_dedup(self, context):
        _configure_pushover(context)
        context.enable()
        first = context.engine
        context.set_format("title", "{{nick}}")
        assert context.engine is not first
        assert context.engine.dedup is first.dedup


# ---------------------------------------------------------------------------
# Filters & format
# ---------------------------------------------------------------------------


class TestFiltersAndFormat:
    def test_boolean_filters(self, context):
        assert context.set_filter("onlyWhenAway", "false").success
        assert context.config.filters.only_when_away is False
        assert context.set_filter("HIGHLIGHTS", "False").success
        assert context.config.filters.highlights is False

    def test_boolean_filter_rejects_other_values(self, context):
        result = context.set_filter("highlights", "yes")
        assert not result.success
        assert result.messages == ["Value must be true or false"]

    def test_channel_lists(self, context):
        assert context.set_filter("whitelist", "#a, #b").success
        assert context.config.filters.channels.whitelist == ["#a", "#b"]
        assert context.set_filter("whitelist", "").success
        assert context.config.filters.channels.whitelist == []

    def test_unknown_filter(self, context):
        assert not context.set_filter("loudness", "1").success

    def test_set_format(self, context, store):
        result = context.set_format("actionMessage", "** {{nick}} {{message}}")
        assert result.success
        assert store.load("alice").format.action_message == "** {{nick}} {{message}}"

    def test_reset_format(self, context):
        context.set_format("title", "custom")
        result = context.set_format("reset", "")
        assert result.success
        assert context.config.format.title == "{{network}}"

    def test_unknown_format_setting(self, context):
        assert not context.set_format("subtitle", "x").success


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


class TestStatus:
    def test_service_states(self, context):
        _configure_pushover(context)
        context.set_service_field("ntfy", "priority", "4")
        context.set_service_field("prowl", "apiKey", "k" * 40)
        context.disable("prowl")
        context.config.services["ntfy"]["enabled"] = True

        report = context.status()
        labels = {s.name: s.label for s in report.services}
        assert labels == {
            "pushover": "enabled",
            "ntfy": "enabled but missing config",
            "prowl": "disabled",
        }
        assert report.enabled is False
        assert report.active == []

    def test_stored_string_enabled_reads_as_disabled(self, store):
        store.path_for("alice").write_text(
            '{"enabled": true, "services": {"ntfy": {"enabled": "false", "topic": "t"}}}'
        )
        context = IdentityContext("alice", store)

        report = context.status()
        assert [s.label for s in report.services] == ["disabled"]
        assert report.active == []

        result = context.set_service_field("ntfy", "topic", "t2")
        assert result.auto_enabled
        assert context.status().active == ["ntfy"]


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


class TestDelivery:
    @pytest.mark.asyncio
    async def test_handle_event_disabled(self, context, make_event):
        assert await context.handle_event(make_event(), away=True) is None

    @pytest.mark.asyncio
    async def test_handle_event_uses_presence(self, store, make_event):
        context = IdentityContext("alice", store, presence=lambda: True, settings=AppSettings())
        _configure_pushover(context)
        context.enable()

        with patch("external_notify.notifications.providers.pushover.request", new=AsyncMock()) as req:
            result = await context.handle_event(make_event())

        assert result.services == ["pushover"]
        req.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_handle_event_present_is_filtered(self, context, make_event):
        _configure_pushover(context)
        context.enable()
        assert await context.handle_event(make_event()) is None

    @pytest.mark.asyncio
    async def test_test_requires_enabled(self, context):
        result = await context.test()
        assert not result.success
        assert "not enabled" in result.messages[0]

    @pytest.mark.asyncio
    async def test_test_single_service_failure(self, context):
        _configure_pushover(context)
        context.enable()
        failing = AsyncMock(side_effect=ProviderTransportError("Pushover", "HTTP 401"))
        with patch("external_notify.notifications.providers.pushover.request", new=failing):
            result = await context.test("pushover")
        assert not result.success
        assert result.messages == ["Failed to send test notification: Pushover error: HTTP 401"]

    @pytest.mark.asyncio
    async def test_test_all_services(self, context):
        _configure_pushover(context)
        context.enable()
        with patch("external_notify.notifications.providers.pushover.request", new=AsyncMock()):
            result = await context.test()
        assert result.success
        assert result.messages == ["Test notification sent to: pushover"]

    def test_config_loaded_lazily_and_restores_engine(self, store):
        first = IdentityContext("alice", store)
        _configure_pushover(first)
        first.enable()

        second = IdentityContext("alice", store)
        assert second.config.enabled is True
        assert second.engine.active_services == ["pushover"]
