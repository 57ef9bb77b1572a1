"""Tests for configuration models and application settings."""

from pathlib import Path

import yaml

from external_notify.core import (
    EXTERNAL_NOTIFY_HOME,
    SETTINGS_FILE,
    AppSettings,
    load_settings,
    save_settings,
)
from external_notify.notifications.config import (
    ChannelFilter,
    FilterConfig,
    FormatConfig,
    NotificationConfig,
)
from external_notify.notifications.events import InboundEvent


class TestPathConstants:
    def test_home_is_path(self):
        assert isinstance(EXTERNAL_NOTIFY_HOME, Path)
        assert EXTERNAL_NOTIFY_HOME.name == ".external-notify"

    def test_settings_file_in_home(self):
        assert SETTINGS_FILE.parent == EXTERNAL_NOTIFY_HOME
        assert SETTINGS_FILE.name == "settings.yaml"


class TestAppSettings:
    def test_defaults(self):
        settings = AppSettings()
        assert settings.request_timeout == 10.0
        assert settings.dedup_interval == 60.0
        assert settings.default_identity == "default"

    def test_roundtrip(self, temp_dir):
        path = temp_dir / "settings.yaml"
        save_settings(AppSettings(default_identity="alice", log_level="DEBUG"), path)
        loaded = load_settings(path)
        assert loaded.default_identity == "alice"
        assert loaded.log_level == "DEBUG"

    def test_missing_file_gives_defaults(self, temp_dir):
        assert load_settings(temp_dir / "absent.yaml") == AppSettings()

    def test_invalid_yaml_gives_defaults(self, temp_dir):
        path = temp_dir / "settings.yaml"
        path.write_text("request_timeout: [unclosed")
        assert load_settings(path) == AppSettings()

    def test_invalid_values_give_defaults(self, temp_dir):
        path = temp_dir / "settings.yaml"
        path.write_text(yaml.dump({"request_timeout": "soon"}))
        assert load_settings(path) == AppSettings()


class TestNotificationConfig:
    def test_defaults(self):
        config = NotificationConfig()
        assert config.enabled is False
        assert config.services == {}
        assert config.filters.only_when_away is True
        assert config.filters.highlights is True
        assert config.filters.channels is None
        assert config.format == FormatConfig()

    def test_from_camel_case_document(self):
        config = NotificationConfig.from_document(
            {
                "enabled": True,
                "filters": {"onlyWhenAway": False, "channels": {"whitelist": ["#a"]}},
                "format": {"titleWithChannel": "{{channel}}", "actionMessage": "*{{nick}}*"},
            }
        )
        assert config.enabled is True
        assert config.filters.only_when_away is False
        assert config.filters.highlights is True
        assert config.filters.channels.whitelist == ["#a"]
        assert config.filters.channels.blacklist == []
        assert config.format.title_with_channel == "{{channel}}"
        assert config.format.action_message == "*{{nick}}*"
        assert config.format.title == "{{network}}"

    def test_malformed_fields_fall_back_individually(self):
        config = NotificationConfig.from_document(
            {
                "enabled": "yes",
                "services": ["not", "a", "dict"],
                "filters": {"onlyWhenAway": "no", "highlights": False},
                "format": {"title": 5, "message": "{{message}}"},
            }
        )
        assert config.enabled is False
        assert config.services == {}
        assert config.filters.only_when_away is True
        assert config.filters.highlights is False
        assert config.format.title == "{{network}}"
        assert config.format.message == "{{message}}"

    def test_non_bool_service_enabled_becomes_false(self):
        config = NotificationConfig.from_document(
            {
                "enabled": True,
                "services": {
                    "ntfy": {"enabled": "false", "topic": "t"},
                    "prowl": {"enabled": 1},
                    "webhook": {"enabled": True},
                },
            }
        )
        assert config.services["ntfy"] == {"enabled": False, "topic": "t"}
        assert config.services["prowl"]["enabled"] is False
        assert config.services["webhook"]["enabled"] is True

    def test_non_mapping_document(self):
        assert NotificationConfig.from_document("garbage") == NotificationConfig()
        assert NotificationConfig.from_document(None) == NotificationConfig()

    def test_service_names_lowercased(self):
        config = NotificationConfig.from_document(
            {"services": {"Pushover": {"enabled": True}, "bad": "entry"}}
        )
        assert config.services == {"pushover": {"enabled": True}}

    def test_to_document_uses_camel_case(self):
        doc = NotificationConfig(filters=FilterConfig(channels=ChannelFilter(blacklist=["#x"]))).to_document()
        assert doc["filters"]["onlyWhenAway"] is True
        assert doc["filters"]["channels"] == {"whitelist": [], "blacklist": ["#x"]}
        assert doc["format"]["titleWithChannel"] == "{{network}} - {{channel}}"
        assert doc["format"]["actionMessage"] == "* {{nick}} {{message}}"

    def test_document_roundtrip(self):
        original = NotificationConfig.from_document(
            {"enabled": True, "services": {"ntfy": {"enabled": True, "topic": "t"}}}
        )
        assert NotificationConfig.from_document(original.to_document()) == original


class TestInboundEvent:
    def test_self_alias(self):
        event = InboundEvent.model_validate({"self": True, "message": "hi"})
        assert event.is_self is True

    def test_defaults(self):
        event = InboundEvent()
        assert event.type == "message"
        assert event.highlight is False
        assert event.timestamp.tzinfo is not None

    def test_unknown_type_is_representable(self):
        assert InboundEvent(type="join").type == "join"
