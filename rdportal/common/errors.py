"""Error taxonomy for portal operations"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from rdportal.common.types import ResponseType


class PortalError(Exception):
    """Base class for every failure surfaced by rdportal"""


class TransportError(PortalError):
    """A call could not be delivered or the bus connection was lost"""


class BrokerError(PortalError):
    """The portal answered a request with a non-success response code"""

    def __init__(self, response: "ResponseType", message: Optional[str] = None) -> None:
        self.response = response
        super().__init__(message or f"portal request failed: {response.name.lower()}")


class ProtocolError(PortalError):
    """A reply or response payload did not have the expected shape"""


class StateError(PortalError):
    """The caller issued an operation the session state does not allow"""
