"""Application settings singleton - single source of truth for configuration

This module provides a singleton Settings class that consolidates:
1. Portal protocol constants (interface names, object paths)
2. Correlator tuning constants
3. Runtime configuration from config.yml

Usage:
    from rdportal.common.settings import settings

    config = ConfigLoader.config_load()
    settings.initialize(config)

    timeout = settings.responseTimeout_get()
"""

from typing import Optional

from rdportal.common.config import Config, ConfigLoader


class Settings:
    """Singleton settings manager combining config.yml and portal constants"""

    _instance: Optional["Settings"] = None

    def __new__(cls) -> "Settings":
        """Ensure only one Settings instance exists"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Initialize settings singleton (only runs once)"""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._config: Optional[Config] = None

    def initialize(self, config: Config) -> None:
        """
        Initialize with loaded configuration

        Args:
            config: Loaded configuration.
        """
        self._config = config

    # =========================================================================
    # Portal Protocol Constants
    # =========================================================================

    REMOTE_DESKTOP_INTERFACE: str = "org.freedesktop.portal.RemoteDesktop"
    REQUEST_INTERFACE: str = "org.freedesktop.portal.Request"
    SESSION_INTERFACE: str = "org.freedesktop.portal.Session"

    REQUEST_RESPONSE_SIGNAL: str = "Response"
    SESSION_CLOSED_SIGNAL: str = "Closed"

    # =========================================================================
    # Correlator Constants
    # =========================================================================

    EARLY_RESPONSE_LIMIT: int = 64
    """Responses kept for request paths not registered yet

    The portal may emit Response before the method reply carrying the
    request path has been processed. Such responses are held until the
    path is registered; the oldest is dropped beyond this limit.
    """

    RESOLVED_HISTORY_LIMIT: int = 256
    """Resolved request paths remembered for duplicate-delivery detection"""

    # =========================================================================
    # Runtime Configuration Access
    # =========================================================================

    @property
    def config(self) -> Config:
        """
        Get loaded configuration, falling back to built-in defaults

        Returns:
            Active configuration.
        """
        if self._config is None:
            self._config = ConfigLoader.config_default()
        return self._config

    def responseTimeout_get(self) -> Optional[float]:
        """Return the response timeout in seconds; None waits forever."""
        timeout = self.config.portal.response_timeout_seconds
        if timeout is None or timeout <= 0:
            return None
        return float(timeout)


settings = Settings()
