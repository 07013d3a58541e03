"""Option records sent with portal requests and records decoded from responses"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from rdportal.common.errors import ProtocolError
from rdportal.common.types import DeviceType, Vardict, Variant
from rdportal.portal.tokens import HandleToken


@dataclass(frozen=True)
class CreateSessionOptions:
    """Options for CreateSession"""

    handle_token: Optional[HandleToken] = None
    session_handle_token: Optional[HandleToken] = None

    def handleToken_with(self, token: HandleToken) -> "CreateSessionOptions":
        return replace(self, handle_token=token)

    def sessionHandleToken_with(self, token: HandleToken) -> "CreateSessionOptions":
        return replace(self, session_handle_token=token)

    def vardict_build(self) -> Vardict:
        """Build the a{sv} payload; unset fields are omitted."""
        vardict: Vardict = {}
        if self.handle_token is not None:
            vardict["handle_token"] = Variant("s", self.handle_token.value)
        if self.session_handle_token is not None:
            vardict["session_handle_token"] = Variant("s", self.session_handle_token.value)
        return vardict


@dataclass(frozen=True)
class SelectDevicesOptions:
    """Options for SelectDevices. `types` unset lets the portal pick its default (all)."""

    handle_token: Optional[HandleToken] = None
    types: Optional[DeviceType] = None

    def handleToken_with(self, token: HandleToken) -> "SelectDevicesOptions":
        return replace(self, handle_token=token)

    def types_with(self, types: DeviceType) -> "SelectDevicesOptions":
        return replace(self, types=DeviceType(types))

    def vardict_build(self) -> Vardict:
        """Build the a{sv} payload; unset fields are omitted."""
        vardict: Vardict = {}
        if self.handle_token is not None:
            vardict["handle_token"] = Variant("s", self.handle_token.value)
        if self.types is not None:
            vardict["types"] = Variant("u", self.types.wire_encode())
        return vardict

    @classmethod
    def vardict_parse(cls, vardict: dict[str, Any]) -> "SelectDevicesOptions":
        """
        Decode an a{sv} payload back into options.

        Values may be plain Python values or `Variant` wrappers.
        """
        handle_token = _value_unwrap(vardict.get("handle_token"))
        types = _value_unwrap(vardict.get("types"))
        return cls(
            handle_token=HandleToken(handle_token) if handle_token is not None else None,
            types=DeviceType.wire_decode(types) if types is not None else None,
        )


@dataclass(frozen=True)
class StartOptions:
    """Options for Start"""

    handle_token: Optional[HandleToken] = None

    def handleToken_with(self, token: HandleToken) -> "StartOptions":
        return replace(self, handle_token=token)

    def vardict_build(self) -> Vardict:
        vardict: Vardict = {}
        if self.handle_token is not None:
            vardict["handle_token"] = Variant("s", self.handle_token.value)
        return vardict


# =========================================================================
# Response records
# =========================================================================


@dataclass(frozen=True)
class BasicResponse:
    """Response whose results carry nothing the caller needs"""

    @classmethod
    def vardict_parse(cls, results: dict[str, Any]) -> "BasicResponse":
        return cls()


@dataclass(frozen=True)
class CreateSessionResponse:
    """Results of a CreateSession request"""

    session_handle: str

    @classmethod
    def vardict_parse(cls, results: dict[str, Any]) -> "CreateSessionResponse":
        session_handle = _value_unwrap(results.get("session_handle"))
        if not isinstance(session_handle, str) or not session_handle.startswith("/"):
            raise ProtocolError(f"invalid session_handle in response: {session_handle!r}")
        return cls(session_handle=session_handle)


@dataclass(frozen=True)
class SelectedDevices:
    """Results of a Start request: the device classes the user granted"""

    devices: DeviceType

    @classmethod
    def vardict_parse(cls, results: dict[str, Any]) -> "SelectedDevices":
        if "devices" not in results:
            raise ProtocolError("start response is missing 'devices'")
        return cls(devices=DeviceType.wire_decode(_value_unwrap(results["devices"])))


def _value_unwrap(value: Any) -> Any:
    """Return the wrapped value of a Variant, or the value itself."""
    if isinstance(value, Variant):
        return value.value
    return value
