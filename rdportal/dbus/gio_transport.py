"""PortalTransport implementation on GDBus (PyGObject)."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Optional

from gi.repository import Gio, GLib

from rdportal.common.errors import TransportError
from rdportal.common.types import Variant
from rdportal.portal.transport import SignalCallback

logger = logging.getLogger(__name__)

_PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"


class GioTransport:
    """
    Message-bus connection to the portal over Gio.DBusConnection.

    Blocking GDBus calls run in the default executor. Signals are dispatched
    by a GLib main loop on a daemon thread and handed to the asyncio loop
    that established the connection.
    """

    def __init__(self, bus: str = "session", destination: str = "org.freedesktop.portal.Desktop") -> None:
        """
        Initialize transport.

        Args:
            bus: "session" or "system".
            destination: Well-known bus name of the portal.
        """
        if bus not in ("session", "system"):
            raise ValueError(f"Unsupported bus '{bus}'. Supported: session, system.")
        self._bus_type = Gio.BusType.SESSION if bus == "session" else Gio.BusType.SYSTEM
        self._destination: str = destination
        self._connection: Optional[Gio.DBusConnection] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._main_loop: Optional[GLib.MainLoop] = None
        self._dispatcher: Optional[threading.Thread] = None

    async def connection_establish(self) -> None:
        """
        Connect to the bus and start signal dispatch.

        Raises:
            TransportError: If the bus is unreachable.
        """
        if self._connection is not None:
            return

        self._loop = asyncio.get_running_loop()
        try:
            self._connection = await self._loop.run_in_executor(
                None, Gio.bus_get_sync, self._bus_type, None
            )
        except GLib.Error as exc:
            raise TransportError(f"Cannot connect to message bus: {exc.message}") from exc

        self._main_loop = GLib.MainLoop()
        self._dispatcher = threading.Thread(
            target=self._main_loop.run, name="rdportal-gio", daemon=True
        )
        self._dispatcher.start()
        logger.info("Connected to bus as %s", self._connection.get_unique_name())

    async def connection_close(self) -> None:
        """Stop signal dispatch. The shared bus connection stays open."""
        if self._main_loop is not None:
            self._main_loop.quit()
            self._main_loop = None
        if self._dispatcher is not None:
            self._dispatcher.join(timeout=1.0)
            self._dispatcher = None
        self._connection = None

    def uniqueName_get(self) -> str:
        return self._connection_get().get_unique_name()

    async def method_call(
        self,
        object_path: str,
        interface: str,
        member: str,
        signature: str,
        args: tuple,
    ) -> tuple:
        connection = self._connection_get()
        parameters = GLib.Variant(f"({signature})", _value_pack(tuple(args))) if signature else None

        def call() -> Optional[GLib.Variant]:
            return connection.call_sync(
                self._destination,
                object_path,
                interface,
                member,
                parameters,
                None,
                Gio.DBusCallFlags.NONE,
                -1,
                None,
            )

        try:
            reply = await self._loop_get().run_in_executor(None, call)
        except GLib.Error as exc:
            raise TransportError(f"{interface}.{member} failed: {exc.message}") from exc
        if reply is None:
            return ()
        return tuple(reply.unpack())

    async def property_get(self, object_path: str, interface: str, name: str) -> Any:
        connection = self._connection_get()

        def call() -> GLib.Variant:
            return connection.call_sync(
                self._destination,
                object_path,
                _PROPERTIES_INTERFACE,
                "Get",
                GLib.Variant("(ss)", (interface, name)),
                GLib.VariantType.new("(v)"),
                Gio.DBusCallFlags.NONE,
                -1,
                None,
            )

        try:
            reply = await self._loop_get().run_in_executor(None, call)
        except GLib.Error as exc:
            raise TransportError(f"Reading {interface}.{name} failed: {exc.message}") from exc
        return reply.unpack()[0]

    def signal_subscribe(
        self,
        interface: str,
        member: str,
        object_path: Optional[str],
        callback: SignalCallback,
    ) -> int:
        connection = self._connection_get()
        loop = self._loop_get()

        def signal_on(
            _connection: Gio.DBusConnection,
            _sender: str,
            path: str,
            _interface: str,
            _member: str,
            parameters: GLib.Variant,
        ) -> None:
            arguments = tuple(parameters.unpack()) if parameters is not None else ()
            loop.call_soon_threadsafe(callback, path, arguments)

        return connection.signal_subscribe(
            self._destination,
            interface,
            member,
            object_path,
            None,
            Gio.DBusSignalFlags.NONE,
            signal_on,
        )

    def signal_unsubscribe(self, subscription_id: int) -> None:
        if self._connection is not None:
            self._connection.signal_unsubscribe(subscription_id)

    def _connection_get(self) -> Gio.DBusConnection:
        if self._connection is None:
            raise TransportError("Bus connection not established")
        return self._connection

    def _loop_get(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise TransportError("Bus connection not established")
        return self._loop


def _value_pack(value: Any) -> Any:
    """Convert Variant wrappers, at any depth, into GLib.Variant."""
    if isinstance(value, Variant):
        return GLib.Variant(value.signature, _value_pack(value.value))
    if isinstance(value, dict):
        return {key: _value_pack(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return tuple(_value_pack(item) for item in value)
    if isinstance(value, list):
        return [_value_pack(item) for item in value]
    return value

