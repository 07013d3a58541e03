"""Pytest configuration and shared fixtures for rdportal tests

This module provides an in-memory portal (`FakeBroker`) implementing the
PortalTransport protocol, plus fixtures shared across unit tests.
"""

import asyncio
import logging
from typing import Any, Callable, Generator, Optional

import pytest

from rdportal.common.config import ConfigLoader
from rdportal.common.settings import settings
from rdportal.common.types import Variant

REMOTE_DESKTOP = "org.freedesktop.portal.RemoteDesktop"
REQUEST = "org.freedesktop.portal.Request"
SESSION = "org.freedesktop.portal.Session"
REQUEST_PREFIX = "/org/freedesktop/portal/desktop/request/1_42/"


class FakeBroker:
    """
    Scriptable in-memory portal.

    Request methods (CreateSession, SelectDevices, Start) reply with a
    request path built from the handle token and, unless `auto_respond`
    is off, emit a Response signal on the next loop iteration.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.properties: dict[str, Any] = {"AvailableDeviceTypes": 7, "version": 1}
        self.property_error: Optional[Exception] = None
        self.call_errors: dict[str, Exception] = {}
        self.responses: dict[str, list[tuple[int, dict[str, Any]]]] = {}
        self.replies: dict[str, tuple] = {}
        self.auto_respond: bool = True
        self.respond_before_reply: bool = False
        self.session_prefix: str = "/session/"
        self.selected_types: Optional[int] = None
        self._subscriptions: dict[int, tuple[str, str, Optional[str], Callable]] = {}
        self._next_subscription: int = 1

    # PortalTransport -----------------------------------------------------

    def uniqueName_get(self) -> str:
        return ":1.42"

    async def method_call(
        self, object_path: str, interface: str, member: str, signature: str, args: tuple
    ) -> tuple:
        self.calls.append(
            {
                "object_path": object_path,
                "interface": interface,
                "member": member,
                "signature": signature,
                "args": args,
            }
        )
        if member in self.call_errors:
            raise self.call_errors[member]
        if member in self.replies:
            return self.replies[member]
        if interface == REMOTE_DESKTOP and member in ("CreateSession", "SelectDevices", "Start"):
            return self._request_handle(member, args)
        return ()

    async def property_get(self, object_path: str, interface: str, name: str) -> Any:
        if self.property_error is not None:
            raise self.property_error
        return self.properties[name]

    def signal_subscribe(
        self, interface: str, member: str, object_path: Optional[str], callback: Callable
    ) -> int:
        subscription_id = self._next_subscription
        self._next_subscription += 1
        self._subscriptions[subscription_id] = (interface, member, object_path, callback)
        return subscription_id

    def signal_unsubscribe(self, subscription_id: int) -> None:
        self._subscriptions.pop(subscription_id, None)

    async def connection_close(self) -> None:
        self._subscriptions.clear()

    # Test helpers --------------------------------------------------------

    def signal_emit(self, interface: str, member: str, path: str, arguments: tuple) -> None:
        for sub_interface, sub_member, sub_path, callback in list(self._subscriptions.values()):
            if sub_interface != interface or sub_member != member:
                continue
            if sub_path is not None and sub_path != path:
                continue
            callback(path, arguments)

    def response_emit(self, path: str, code: int, results: dict[str, Any]) -> None:
        self.signal_emit(REQUEST, "Response", path, (code, results))

    def subscriptionCount_get(self) -> int:
        return len(self._subscriptions)

    def calls_for(self, member: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["member"] == member]

    def _request_handle(self, member: str, args: tuple) -> tuple:
        options: dict[str, Variant] = args[-1]
        token = options["handle_token"].value
        path = REQUEST_PREFIX + token

        queued = self.responses.get(member)
        if queued:
            response = queued.pop(0)
        else:
            response = self._response_default(member, options)

        if member == "SelectDevices" and "types" in options:
            self.selected_types = options["types"].value

        if self.auto_respond:
            if self.respond_before_reply:
                self.response_emit(path, *response)
            else:
                asyncio.get_running_loop().call_soon(self.response_emit, path, *response)
        return (path,)

    def _response_default(
        self, member: str, options: dict[str, Variant]
    ) -> tuple[int, dict[str, Any]]:
        if member == "CreateSession":
            session_token = options["session_handle_token"].value
            return 0, {"session_handle": self.session_prefix + session_token}
        if member == "Start":
            devices = self.selected_types if self.selected_types is not None else 7
            return 0, {"devices": devices}
        return 0, {}


@pytest.fixture
def broker() -> FakeBroker:
    """Fresh in-memory portal."""
    return FakeBroker()


@pytest.fixture
def run() -> Callable:
    """Run a coroutine to completion on a new event loop."""
    return asyncio.run


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    """Give every test the built-in default configuration."""
    settings.initialize(ConfigLoader.config_default())
    yield
    settings.initialize(ConfigLoader.config_default())


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)
