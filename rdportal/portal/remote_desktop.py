"""
RemoteDesktop portal proxy.

Typical flow:

    proxy = RemoteDesktopProxy(transport)
    session = await proxy.session_create(
        CreateSessionOptions().sessionHandleToken_with(HandleToken("s1"))
    )
    request = await proxy.devices_select(
        session, SelectDevicesOptions().types_with(DeviceType.KEYBOARD | DeviceType.POINTER)
    )
    await request.response_receive()
    request = await proxy.start(session)
    granted = await request.response_receive(SelectedDevices)
    await proxy.keyboardKeycode_notify(session, 28, KeyState.PRESSED)
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Optional, TypeVar

from rdportal.common.errors import PortalError, ProtocolError, StateError
from rdportal.common.settings import settings
from rdportal.common.types import (
    Axis,
    DeviceType,
    InputEvent,
    KeyboardKeycode,
    KeyboardKeysym,
    KeyState,
    PointerAxis,
    PointerAxisDiscrete,
    PointerButton,
    PointerMotion,
    PointerMotionAbsolute,
    SessionState,
    TouchDown,
    TouchMotion,
    TouchUp,
)
from rdportal.portal.options import (
    CreateSessionOptions,
    CreateSessionResponse,
    SelectDevicesOptions,
    SelectedDevices,
    StartOptions,
)
from rdportal.portal.request import PendingRequest, RequestCorrelator
from rdportal.portal.session import SessionHandle
from rdportal.portal.tokens import HandleToken, TokenRegistry, WindowIdentifier
from rdportal.portal.transport import PortalTransport

logger = logging.getLogger(__name__)

OptionsT = TypeVar("OptionsT", CreateSessionOptions, SelectDevicesOptions, StartOptions)


class RemoteDesktopProxy:
    """Lets a sandboxed application create remote desktop sessions."""

    def __init__(
        self,
        transport: PortalTransport,
        object_path: Optional[str] = None,
        strict_session_order: Optional[bool] = None,
    ) -> None:
        """
        Initialize proxy.

        Args:
            transport: Bus connection to the portal; may be shared.
            object_path: Portal object path (default from config).
            strict_session_order: Refuse Start before SelectDevices was
                acknowledged (default from config).
        """
        portal_config = settings.config.portal
        self._transport: PortalTransport = transport
        self._object_path: str = object_path or portal_config.object_path
        self._strict: bool = (
            portal_config.strict_session_order
            if strict_session_order is None
            else strict_session_order
        )
        self._tokens = TokenRegistry()
        self._sessions: list[SessionHandle] = []
        self._correlator = RequestCorrelator(transport)
        self._correlator.subscription_start()

    async def __aenter__(self) -> "RemoteDesktopProxy":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.connection_close()

    @property
    def correlator(self) -> RequestCorrelator:
        return self._correlator

    @property
    def sessions(self) -> list[SessionHandle]:
        """Sessions created through this proxy that are not closed yet."""
        return list(self._sessions)

    async def connection_close(self) -> None:
        """
        Close every open session and stop correlating responses.

        The transport itself is left open; other proxies may share it.
        """
        for session in list(self._sessions):
            try:
                await session.close()
            except PortalError as exc:
                logger.warning("Failed to close session %s: %s", session.path, exc)
        self._correlator.subscription_stop()

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def session_create(
        self, options: Optional[CreateSessionOptions] = None
    ) -> SessionHandle:
        """
        Create a remote desktop session.

        Args:
            options: CreateSession options; missing tokens are generated.

        Returns:
            Session handle in state CREATED.

        Raises:
            TransportError: If the call could not be delivered.
            BrokerError: If the portal refused to create the session.
            ProtocolError: If the response had no usable session handle.
            StateError: If a supplied token is already in use.
        """
        options = options or CreateSessionOptions()
        session_token = self._token_acquire(options.session_handle_token)
        options = options.sessionHandleToken_with(session_token)

        try:
            request = await self._request_issue(
                "CreateSession",
                "a{sv}",
                options,
                lambda opts: (opts.vardict_build(),),
            )
            response = await request.response_receive(CreateSessionResponse)
        except BaseException:
            self._tokens.token_release(session_token)
            raise

        session = SessionHandle(
            self._transport,
            response.session_handle,
            on_closed=functools.partial(self._session_forget, session_token),
        )
        self._sessions.append(session)
        logger.info("Created session %s", session.path)
        return session

    async def devices_select(
        self,
        session: SessionHandle,
        options: Optional[SelectDevicesOptions] = None,
    ) -> PendingRequest:
        """
        Select input devices to remote control.

        The session moves to DEVICES_SELECTED when the portal answers with
        success, whether or not the returned request is awaited.

        Args:
            session: Session in state CREATED or DEVICES_SELECTED.
            options: SelectDevices options; `types` unset asks for the portal default.

        Returns:
            Pending request to await with response_receive().

        Raises:
            StateError: If the session is in another state.
            TransportError: If the call could not be delivered.
        """
        session.state_require(
            "SelectDevices", SessionState.CREATED, SessionState.DEVICES_SELECTED
        )
        options = options or SelectDevicesOptions()
        requested = options.types

        def selected_on(_results: dict[str, Any]) -> None:
            session.devicesSelected_mark(requested)

        return await self._request_issue(
            "SelectDevices",
            "oa{sv}",
            options,
            lambda opts: (session.path, opts.vardict_build()),
            on_success=selected_on,
        )

    async def start(
        self,
        session: SessionHandle,
        parent_window: Optional[WindowIdentifier] = None,
        options: Optional[StartOptions] = None,
    ) -> PendingRequest:
        """
        Start the remote desktop session.

        The portal typically shows a dialog letting the user choose what to
        share. The session moves to ACTIVE when the portal answers with
        success; awaiting the request with SelectedDevices yields the grant.

        Args:
            session: Session in state DEVICES_SELECTED (or CREATED when strict
                ordering is disabled).
            parent_window: Parent window for the dialog; None means no parent.
            options: Start options.

        Returns:
            Pending request to await with response_receive(SelectedDevices).

        Raises:
            StateError: If the session is in another state.
            TransportError: If the call could not be delivered.
        """
        allowed = (SessionState.DEVICES_SELECTED,)
        if not self._strict:
            allowed = (SessionState.CREATED, SessionState.DEVICES_SELECTED)
        session.state_require("Start", *allowed)
        window = parent_window or WindowIdentifier()

        def started_on(results: dict[str, Any]) -> None:
            session.active_mark(SelectedDevices.vardict_parse(results).devices)

        return await self._request_issue(
            "Start",
            "osa{sv}",
            options or StartOptions(),
            lambda opts: (session.path, str(window), opts.vardict_build()),
            on_success=started_on,
        )

    async def session_close(self, session: SessionHandle) -> None:
        """Close a session; closing a closed session does nothing."""
        await session.close()

    # =========================================================================
    # Input events
    # =========================================================================

    async def event_notify(self, session: SessionHandle, event: InputEvent) -> None:
        """
        Send one input event on an active session.

        Args:
            session: Session in state ACTIVE.
            event: Input event; its device class must have been granted.

        Raises:
            StateError: If the session is not active or the device class
                was not granted. Nothing is sent in that case.
            TransportError: If the call could not be delivered.
        """
        session.device_require(event.MEMBER, event.DEVICE)
        await self._portal_call(
            event.MEMBER,
            "oa{sv}" + event.SIGNATURE,
            (session.path, event.options_get(), *event.arguments_get()),
        )

    async def keyboardKeycode_notify(
        self, session: SessionHandle, keycode: int, state: KeyState
    ) -> None:
        """Press or release an evdev keycode. Needs KEYBOARD access."""
        await self.event_notify(session, KeyboardKeycode(keycode, state))

    async def keyboardKeysym_notify(
        self, session: SessionHandle, keysym: int, state: KeyState
    ) -> None:
        """Press or release an X11 keysym. Needs KEYBOARD access."""
        await self.event_notify(session, KeyboardKeysym(keysym, state))

    async def touchUp_notify(self, session: SessionHandle, slot: int) -> None:
        """Release a touch slot. Needs TOUCHSCREEN access."""
        await self.event_notify(session, TouchUp(slot))

    async def touchDown_notify(
        self, session: SessionHandle, stream: int, slot: int, x: float, y: float
    ) -> None:
        """Put a touch point down in stream coordinates. Needs TOUCHSCREEN access."""
        await self.event_notify(session, TouchDown(stream, slot, x, y))

    async def touchMotion_notify(
        self, session: SessionHandle, stream: int, slot: int, x: float, y: float
    ) -> None:
        """Move a touch point in stream coordinates. Needs TOUCHSCREEN access."""
        await self.event_notify(session, TouchMotion(stream, slot, x, y))

    async def pointerMotionAbsolute_notify(
        self, session: SessionHandle, stream: int, x: float, y: float
    ) -> None:
        """Move the pointer to (x, y) in stream coordinates. Needs POINTER access."""
        await self.event_notify(session, PointerMotionAbsolute(stream, x, y))

    async def pointerMotion_notify(self, session: SessionHandle, dx: float, dy: float) -> None:
        """Move the pointer by (dx, dy). Needs POINTER access."""
        await self.event_notify(session, PointerMotion(dx, dy))

    async def pointerButton_notify(
        self, session: SessionHandle, button: int, state: KeyState
    ) -> None:
        """Press or release an evdev BTN_* button. Needs POINTER access."""
        await self.event_notify(session, PointerButton(button, state))

    async def pointerAxisDiscrete_notify(
        self, session: SessionHandle, axis: Axis, steps: int
    ) -> None:
        """Scroll by discrete steps. Needs POINTER access."""
        await self.event_notify(session, PointerAxisDiscrete(axis, steps))

    async def pointerAxis_notify(
        self, session: SessionHandle, dx: float, dy: float, finish: bool = False
    ) -> None:
        """Smooth scroll by (dx, dy). Needs POINTER access."""
        await self.event_notify(session, PointerAxis(dx, dy, finish))

    # =========================================================================
    # Properties
    # =========================================================================

    async def availableDeviceTypes_get(self) -> DeviceType:
        """
        Read the device types the portal supports.

        Raises:
            TransportError: If the property could not be read.
            ProtocolError: If the value is not a valid device-type set.
        """
        value = await self._transport.property_get(
            self._object_path, settings.REMOTE_DESKTOP_INTERFACE, "AvailableDeviceTypes"
        )
        return DeviceType.wire_decode(value)

    async def version_get(self) -> int:
        """
        Read the RemoteDesktop interface version.

        Raises:
            TransportError: If the property could not be read.
            ProtocolError: If the value is not an unsigned integer.
        """
        value = await self._transport.property_get(
            self._object_path, settings.REMOTE_DESKTOP_INTERFACE, "version"
        )
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ProtocolError(f"interface version must be an unsigned integer, got {value!r}")
        return value

    # =========================================================================
    # Internals
    # =========================================================================

    def _token_acquire(self, token: Optional[HandleToken]) -> HandleToken:
        try:
            return self._tokens.token_acquire(token)
        except ValueError as exc:
            raise StateError(str(exc)) from exc

    def _session_forget(self, session_token: HandleToken) -> None:
        self._tokens.token_release(session_token)
        self._sessions = [session for session in self._sessions if not session.is_closed]

    async def _request_issue(
        self,
        member: str,
        signature: str,
        options: OptionsT,
        arguments: Callable[[OptionsT], tuple],
        on_success: Optional[Callable[[dict[str, Any]], None]] = None,
    ) -> PendingRequest:
        """
        Issue a method that answers with a Request path and register that path.

        Args:
            member: RemoteDesktop method name.
            signature: Argument signature.
            options: Option record; a handle token is generated if unset.
            arguments: Builds the argument tuple from the final options.
            on_success: Hook run on a successful response.

        Returns:
            Pending request registered with the correlator.
        """
        token = self._token_acquire(options.handle_token)
        options = options.handleToken_with(token)
        try:
            reply = await self._portal_call(member, signature, arguments(options))
            path = self._requestPath_parse(member, reply)
            request = PendingRequest(
                self._correlator,
                self._transport,
                path,
                on_success=on_success,
                on_finish=functools.partial(self._tokens.token_release, token),
            )
        except BaseException:
            self._tokens.token_release(token)
            raise

        logger.debug("%s issued as request %s", member, path)
        return request

    async def _portal_call(self, member: str, signature: str, args: tuple) -> tuple:
        logger.debug("Calling %s%s", member, signature)
        return await self._transport.method_call(
            self._object_path,
            settings.REMOTE_DESKTOP_INTERFACE,
            member,
            signature,
            args,
        )

    @staticmethod
    def _requestPath_parse(member: str, reply: Any) -> str:
        if (
            not isinstance(reply, tuple)
            or len(reply) != 1
            or not isinstance(reply[0], str)
            or not reply[0].startswith("/")
        ):
            raise ProtocolError(f"{member} did not reply with a request path: {reply!r}")
        return reply[0]
