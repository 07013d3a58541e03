"""Transport protocol consumed by the portal proxy."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

SignalCallback = Callable[[str, tuple], None]
"""Called with (object_path, signal arguments) for each matching signal."""


class PortalTransport(Protocol):
    """Abstract message-bus connection to the portal."""

    def uniqueName_get(self) -> str:
        """
        Return the connection's unique bus name (e.g. ":1.42").

        Returns:
            Unique bus name.
        """

    async def method_call(
        self,
        object_path: str,
        interface: str,
        member: str,
        signature: str,
        args: tuple,
    ) -> tuple:
        """
        Call a method on the portal and return its reply body.

        Args:
            object_path: Target object path.
            interface: Interface name.
            member: Method name.
            signature: Argument signature without the enclosing parentheses.
            args: Arguments; a{sv} values are `Variant` instances.

        Returns:
            Reply body as a tuple.

        Raises:
            TransportError: If the call could not be delivered or the portal
                replied with a D-Bus error.
        """

    async def property_get(self, object_path: str, interface: str, name: str) -> Any:
        """
        Read a property from the portal.

        Raises:
            TransportError: If the read fails.
        """

    def signal_subscribe(
        self,
        interface: str,
        member: str,
        object_path: Optional[str],
        callback: SignalCallback,
    ) -> int:
        """
        Subscribe to a signal; object_path None matches every path.

        Returns:
            Subscription id for signal_unsubscribe.
        """

    def signal_unsubscribe(self, subscription_id: int) -> None:
        """Remove a subscription."""

    async def connection_close(self) -> None:
        """Close the bus connection."""
