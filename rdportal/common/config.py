"""Configuration file loading and management"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class PortalConfig:
    """Portal connection settings"""
    bus: str = "session"
    destination: str = "org.freedesktop.portal.Desktop"
    object_path: str = "/org/freedesktop/portal/desktop"
    response_timeout_seconds: Optional[float] = 120.0
    strict_session_order: bool = True


@dataclass
class SessionConfig:
    """Defaults for sessions started from the command line"""
    devices: List[str] = field(default_factory=lambda: ["keyboard", "pointer"])


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = DEFAULT_LOG_FORMAT


@dataclass
class Config:
    """Complete application configuration"""
    portal: PortalConfig
    session: SessionConfig
    logging: LoggingConfig


class ConfigLoader:
    """Loads and parses configuration from YAML files"""

    DEFAULT_CONFIG_PATHS = [
        "config.yml",
        "~/.config/rdportal/config.yml",
        "/etc/rdportal/config.yml",
    ]

    @staticmethod
    def configFile_find() -> Optional[Path]:
        """
        Find configuration file in standard locations

        Returns:
            Path to config file, or None if not found
        """
        for config_path in ConfigLoader.DEFAULT_CONFIG_PATHS:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
            ValueError: If the document is not a mapping
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def config_default() -> Config:
        """Return the built-in configuration used when no file is present."""
        return Config(portal=PortalConfig(), session=SessionConfig(), logging=LoggingConfig())

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> Config:
        """
        Parse configuration dictionary into Config object

        Every section and key is optional; missing values take the
        built-in defaults.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object

        Raises:
            ValueError: If a value has the wrong type
        """
        defaults = ConfigLoader.config_default()

        portal_data = data.get("portal") or {}
        bus = portal_data.get("bus", defaults.portal.bus)
        if bus not in ("session", "system"):
            raise ValueError(f"portal.bus must be 'session' or 'system', got {bus!r}")
        portal = PortalConfig(
            bus=bus,
            destination=portal_data.get("destination", defaults.portal.destination),
            object_path=portal_data.get("object_path", defaults.portal.object_path),
            response_timeout_seconds=portal_data.get(
                "response_timeout_seconds", defaults.portal.response_timeout_seconds
            ),
            strict_session_order=bool(
                portal_data.get("strict_session_order", defaults.portal.strict_session_order)
            ),
        )

        session_data = data.get("session") or {}
        devices = session_data.get("devices", defaults.session.devices)
        if isinstance(devices, str):
            devices = [item.strip() for item in devices.split(",") if item.strip()]
        if not isinstance(devices, list):
            raise ValueError("session.devices must be a list of device type names")
        session = SessionConfig(devices=[str(item) for item in devices])

        logging_data = data.get("logging") or {}
        logging = LoggingConfig(
            level=logging_data.get("level", defaults.logging.level),
            file=logging_data.get("file"),
            format=logging_data.get("format", defaults.logging.format),
        )

        return Config(portal=portal, session=session, logging=logging)

    @staticmethod
    def config_load(file_path: Optional[Path] = None) -> Config:
        """
        Load configuration from file

        Args:
            file_path: Optional path to config file. If None, searches standard
                locations and falls back to built-in defaults.

        Returns:
            Parsed Config object

        Raises:
            FileNotFoundError: If an explicit config file does not exist
            ValueError: If config file is invalid
        """
        if file_path is None:
            file_path = ConfigLoader.configFile_find()
            if file_path is None:
                return ConfigLoader.config_default()

        data = ConfigLoader.yaml_load(file_path)
        return ConfigLoader.config_parse(data)

    @staticmethod
    def configWithOverrides_load(
        file_path: Optional[Path] = None,
        **overrides: Any
    ) -> Config:
        """
        Load configuration and apply command-line overrides

        Args:
            file_path: Optional path to config file
            **overrides: Key-value pairs to override config values

        Returns:
            Config object with overrides applied

        Example:
            config = ConfigLoader.configWithOverrides_load(
                devices=["pointer"],
                log_level="DEBUG",
            )
        """
        config = ConfigLoader.config_load(file_path)

        if overrides.get("bus") is not None:
            config.portal.bus = overrides["bus"]
        if overrides.get("timeout") is not None:
            config.portal.response_timeout_seconds = overrides["timeout"]
        if overrides.get("devices") is not None:
            config.session.devices = list(overrides["devices"])
        if overrides.get("log_level") is not None:
            config.logging.level = overrides["log_level"]

        return config
