"""Remote desktop session handle and its lifecycle state machine."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from rdportal.common.errors import StateError
from rdportal.common.settings import settings
from rdportal.common.types import DeviceType, SessionState
from rdportal.portal.transport import PortalTransport

logger = logging.getLogger(__name__)


class SessionHandle:
    """
    Caller-owned reference to a portal session object.

    The handle tracks the session through CREATED, DEVICES_SELECTED, ACTIVE
    and CLOSED. States only move forward; once CLOSED, every
    session-scoped operation is refused locally with StateError.
    """

    def __init__(
        self,
        transport: PortalTransport,
        path: str,
        on_closed: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Initialize session handle.

        Args:
            transport: Bus connection the session was created on.
            path: Session object path returned by CreateSession.
            on_closed: Called once when the session reaches CLOSED.
        """
        self._on_closed = on_closed
        self._transport: PortalTransport = transport
        self._path: str = path
        self._state: SessionState = SessionState.CREATED
        self._requested: Optional[DeviceType] = None
        self._granted: DeviceType = DeviceType(0)
        self._closed_subscription: Optional[int] = transport.signal_subscribe(
            settings.SESSION_INTERFACE,
            settings.SESSION_CLOSED_SIGNAL,
            path,
            self._closed_on,
        )

    def __repr__(self) -> str:
        return f"SessionHandle(path={self._path!r}, state={self._state.name})"

    @property
    def path(self) -> str:
        return self._path

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def requested_devices(self) -> Optional[DeviceType]:
        """Device types asked for in SelectDevices; None means the portal default."""
        return self._requested

    @property
    def granted_devices(self) -> DeviceType:
        """Device types the portal granted in Start; empty until ACTIVE."""
        return self._granted

    @property
    def is_active(self) -> bool:
        return self._state == SessionState.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self._state == SessionState.CLOSED

    def state_require(self, operation: str, *allowed: SessionState) -> None:
        """
        Refuse an operation unless the session is in one of the allowed states.

        Raises:
            StateError: If the current state is not allowed.
        """
        if self._state not in allowed:
            names = ", ".join(state.name for state in allowed)
            raise StateError(
                f"{operation} requires session {self._path} in {names}, "
                f"but it is {self._state.name}"
            )

    def device_require(self, operation: str, device: DeviceType) -> None:
        """
        Refuse an input event unless the session is ACTIVE and device was granted.

        Raises:
            StateError: If the session is not active or device is not granted.
        """
        self.state_require(operation, SessionState.ACTIVE)
        if not device.isSubset_check(self._granted):
            raise StateError(
                f"{operation} needs {device.name.lower()} access, "
                f"granted: {', '.join(self._granted.names_get()) or 'none'}"
            )

    def devicesSelected_mark(self, requested: Optional[DeviceType]) -> None:
        """Record an acknowledged SelectDevices request."""
        self._transition(SessionState.DEVICES_SELECTED)
        self._requested = requested

    def active_mark(self, granted: DeviceType) -> None:
        """Record the granted device set from a successful Start."""
        self._transition(SessionState.ACTIVE)
        self._granted = granted
        if self._requested is not None and not granted.isSubset_check(self._requested):
            logger.warning(
                "Session %s granted %s beyond requested %s",
                self._path,
                granted.names_get(),
                self._requested.names_get(),
            )
        logger.info("Session %s active with %s", self._path, granted.names_get() or "no devices")

    def closed_mark(self) -> None:
        """Move to CLOSED and drop the Closed subscription. Idempotent."""
        if self._state == SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        self._granted = DeviceType(0)
        if self._closed_subscription is not None:
            self._transport.signal_unsubscribe(self._closed_subscription)
            self._closed_subscription = None
        if self._on_closed is not None:
            self._on_closed()
        logger.info("Session %s closed", self._path)

    async def close(self) -> None:
        """
        Close the session on the portal side.

        Closing an already closed session does nothing. The handle is
        marked CLOSED even if the Close call fails.
        """
        if self._state == SessionState.CLOSED:
            return
        try:
            await self._transport.method_call(
                self._path, settings.SESSION_INTERFACE, "Close", "", ()
            )
        finally:
            self.closed_mark()

    def _transition(self, target: SessionState) -> None:
        if self._state == SessionState.CLOSED:
            raise StateError(f"session {self._path} is closed")
        if target.value < self._state.value:
            raise StateError(
                f"session {self._path} cannot move back from {self._state.name} to {target.name}"
            )
        self._state = target

    def _closed_on(self, path: str, arguments: tuple) -> None:
        """Signal callback for Session::Closed emitted by the portal."""
        logger.info("Portal closed session %s", path)
        self.closed_mark()
