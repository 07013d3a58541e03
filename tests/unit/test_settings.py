"""Unit tests for settings singleton"""

from rdportal.common.config import ConfigLoader
from rdportal.common.settings import Settings, settings


class TestSettingsSingleton:
    """Test Settings singleton pattern"""

    def test_singleton_same_instance(self):
        """Test that Settings() returns same instance"""
        s1 = Settings()
        s2 = Settings()
        assert s1 is s2

    def test_global_settings_is_singleton(self):
        """Test that global 'settings' is the singleton"""
        s = Settings()
        assert settings is s


class TestSettingsConstants:
    """Test that all constants are accessible"""

    def test_interface_constants(self):
        assert settings.REMOTE_DESKTOP_INTERFACE == "org.freedesktop.portal.RemoteDesktop"
        assert settings.REQUEST_INTERFACE == "org.freedesktop.portal.Request"
        assert settings.SESSION_INTERFACE == "org.freedesktop.portal.Session"
        assert settings.REQUEST_RESPONSE_SIGNAL == "Response"
        assert settings.SESSION_CLOSED_SIGNAL == "Closed"

    def test_correlator_constants(self):
        assert settings.EARLY_RESPONSE_LIMIT == 64
        assert settings.RESOLVED_HISTORY_LIMIT == 256


class TestSettingsConfig:
    """Test runtime configuration access"""

    def test_initialize_replaces_config(self):
        config = ConfigLoader.config_parse({"portal": {"bus": "system"}})
        settings.initialize(config)
        assert settings.config is config

    def test_response_timeout(self):
        settings.config.portal.response_timeout_seconds = 30
        assert settings.responseTimeout_get() == 30.0

    def test_response_timeout_disabled(self):
        """Test zero or missing timeout waits forever"""
        settings.config.portal.response_timeout_seconds = 0
        assert settings.responseTimeout_get() is None
        settings.config.portal.response_timeout_seconds = None
        assert settings.responseTimeout_get() is None
