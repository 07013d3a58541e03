"""Unit tests for configuration loading and parsing"""

import pytest
from pathlib import Path
from rdportal.common.config import (
    DEFAULT_LOG_FORMAT,
    Config,
    ConfigLoader,
    PortalConfig,
)


class TestConfigLoaderYAMLLoading:
    """Test YAML file loading"""

    def test_yaml_load_valid_file(self, tmp_path):
        """Test loading valid YAML file"""
        config_file = tmp_path / "test.yml"
        config_file.write_text(
            """
portal:
  bus: system
  response_timeout_seconds: 30
"""
        )

        data = ConfigLoader.yaml_load(config_file)
        assert isinstance(data, dict)
        assert "portal" in data
        assert data["portal"]["bus"] == "system"

    def test_yaml_load_missing_file_raises(self):
        """Test loading non-existent file raises FileNotFoundError"""
        with pytest.raises(FileNotFoundError):
            ConfigLoader.yaml_load(Path("/nonexistent/config.yml"))

    def test_yaml_load_invalid_yaml_raises(self, tmp_path):
        """Test loading invalid YAML raises error"""
        config_file = tmp_path / "invalid.yml"
        config_file.write_text("invalid: yaml: content: [unclosed")

        with pytest.raises(Exception):  # yaml.YAMLError or similar
            ConfigLoader.yaml_load(config_file)

    def test_yaml_load_non_dict_raises(self, tmp_path):
        """Test loading YAML that isn't a dict raises ValueError"""
        config_file = tmp_path / "list.yml"
        config_file.write_text("- item1\n- item2")

        with pytest.raises(ValueError, match="must contain a YAML dictionary"):
            ConfigLoader.yaml_load(config_file)


class TestConfigLoaderParsing:
    """Test configuration dictionary parsing"""

    def test_config_parse_full(self):
        """Test parsing a config with every section present"""
        data = {
            "portal": {
                "bus": "system",
                "destination": "org.example.Portal",
                "object_path": "/org/example/portal",
                "response_timeout_seconds": 5,
                "strict_session_order": False,
            },
            "session": {"devices": ["pointer", "touchscreen"]},
            "logging": {"level": "DEBUG", "file": "/tmp/rdportal.log", "format": "%(message)s"},
        }

        config = ConfigLoader.config_parse(data)

        assert isinstance(config, Config)
        assert config.portal.bus == "system"
        assert config.portal.destination == "org.example.Portal"
        assert config.portal.object_path == "/org/example/portal"
        assert config.portal.response_timeout_seconds == 5
        assert config.portal.strict_session_order is False
        assert config.session.devices == ["pointer", "touchscreen"]
        assert config.logging.level == "DEBUG"
        assert config.logging.file == "/tmp/rdportal.log"
        assert config.logging.format == "%(message)s"

    def test_config_parse_empty_uses_defaults(self):
        """Test every key is optional"""
        config = ConfigLoader.config_parse({})

        assert config.portal == PortalConfig()
        assert config.portal.strict_session_order is True
        assert config.session.devices == ["keyboard", "pointer"]
        assert config.logging.level == "INFO"
        assert config.logging.file is None
        assert config.logging.format == DEFAULT_LOG_FORMAT

    def test_config_parse_null_sections(self):
        """Test sections written as bare keys in YAML are treated as empty"""
        config = ConfigLoader.config_parse({"portal": None, "session": None, "logging": None})
        assert config.portal.bus == "session"

    def test_config_parse_devices_string(self):
        """Test comma-separated device list"""
        config = ConfigLoader.config_parse({"session": {"devices": "keyboard, touchscreen"}})
        assert config.session.devices == ["keyboard", "touchscreen"]

    def test_config_parse_devices_invalid_raises(self):
        with pytest.raises(ValueError, match="session.devices"):
            ConfigLoader.config_parse({"session": {"devices": 3}})

    def test_config_parse_bad_bus_raises(self):
        with pytest.raises(ValueError, match="portal.bus"):
            ConfigLoader.config_parse({"portal": {"bus": "starter"}})

    def test_default_configs_are_independent(self):
        """Test each default config owns its device list"""
        first = ConfigLoader.config_default()
        second = ConfigLoader.config_default()
        first.session.devices.append("touchscreen")
        assert second.session.devices == ["keyboard", "pointer"]


class TestConfigLoaderLoad:
    """Test loading from disk"""

    def test_config_load_explicit_file(self, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("session:\n  devices: [pointer]\n")

        config = ConfigLoader.config_load(config_file)
        assert config.session.devices == ["pointer"]

    def test_config_load_explicit_missing_raises(self):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.config_load(Path("/nonexistent/config.yml"))

    def test_config_load_no_file_uses_defaults(self, tmp_path, monkeypatch):
        """Test defaults are returned when no standard location has a file"""
        monkeypatch.setattr(
            ConfigLoader, "DEFAULT_CONFIG_PATHS", [str(tmp_path / "absent.yml")]
        )
        config = ConfigLoader.config_load()
        assert config == ConfigLoader.config_default()

    def test_config_file_find(self, tmp_path, monkeypatch):
        config_file = tmp_path / "found.yml"
        config_file.write_text("{}\n")
        monkeypatch.setattr(
            ConfigLoader,
            "DEFAULT_CONFIG_PATHS",
            [str(tmp_path / "absent.yml"), str(config_file)],
        )
        assert ConfigLoader.configFile_find() == config_file.resolve()


class TestConfigOverrides:
    """Test command-line overrides"""

    def test_overrides_applied(self, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("portal:\n  bus: session\n")

        config = ConfigLoader.configWithOverrides_load(
            file_path=config_file,
            bus="system",
            timeout=7.5,
            devices=["touchscreen"],
            log_level="DEBUG",
        )

        assert config.portal.bus == "system"
        assert config.portal.response_timeout_seconds == 7.5
        assert config.session.devices == ["touchscreen"]
        assert config.logging.level == "DEBUG"

    def test_none_overrides_ignored(self, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("logging:\n  level: WARNING\n")

        config = ConfigLoader.configWithOverrides_load(
            file_path=config_file, bus=None, timeout=None, devices=None, log_level=None
        )

        assert config.portal.bus == "session"
        assert config.logging.level == "WARNING"
