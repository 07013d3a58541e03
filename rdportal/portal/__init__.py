"""RemoteDesktop portal client: sessions, requests and input events."""

from rdportal.portal.options import (
    BasicResponse,
    CreateSessionOptions,
    CreateSessionResponse,
    SelectDevicesOptions,
    SelectedDevices,
    StartOptions,
)
from rdportal.portal.remote_desktop import RemoteDesktopProxy
from rdportal.portal.request import PendingRequest, RequestCorrelator
from rdportal.portal.session import SessionHandle
from rdportal.portal.tokens import HandleToken, WindowIdentifier
from rdportal.portal.transport import PortalTransport

__all__ = [
    "BasicResponse",
    "CreateSessionOptions",
    "CreateSessionResponse",
    "HandleToken",
    "PendingRequest",
    "PortalTransport",
    "RemoteDesktopProxy",
    "RequestCorrelator",
    "SelectDevicesOptions",
    "SelectedDevices",
    "SessionHandle",
    "StartOptions",
    "WindowIdentifier",
]
