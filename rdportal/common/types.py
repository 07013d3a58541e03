"""Common types and data structures for rdportal"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import Any, ClassVar, Iterable, Union

from rdportal.common.errors import ProtocolError


class DeviceType(IntFlag):
    """Input device classes, encoded on the wire as a `u` bit-flag set"""
    KEYBOARD = 1
    POINTER = 2
    TOUCHSCREEN = 4

    @classmethod
    def all(cls) -> "DeviceType":
        """Return the union of every known device class."""
        return cls.KEYBOARD | cls.POINTER | cls.TOUCHSCREEN

    @classmethod
    def wire_decode(cls, value: Any) -> "DeviceType":
        """
        Decode a wire bit-flag integer.

        Args:
            value: Unsigned 32-bit integer received from the broker.

        Returns:
            Decoded device-type set.

        Raises:
            ProtocolError: If the value is not an integer or carries unknown bits.
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise ProtocolError(f"device types must be an unsigned integer, got {value!r}")
        if value < 0 or value & ~int(cls.all()):
            raise ProtocolError(f"device types {value:#x} outside mask {int(cls.all()):#x}")
        return cls(value)

    def wire_encode(self) -> int:
        """Return the unsigned integer sent on the wire."""
        return int(self)

    def isSubset_check(self, other: "DeviceType") -> bool:
        """Check whether every flag in self is also present in other"""
        return (self & other) == self

    def names_get(self) -> list[str]:
        """Return lowercase names of the set flags, lowest bit first."""
        return [member.name.lower() for member in DeviceType if member in self]

    @classmethod
    def names_parse(cls, names: Iterable[str]) -> "DeviceType":
        """
        Build a device-type set from names such as "keyboard" or "pointer".

        Raises:
            ValueError: If a name is unknown.
        """
        result = cls(0)
        for name in names:
            token = name.strip().upper()
            if not token:
                continue
            try:
                result |= cls[token]
            except KeyError:
                raise ValueError(f"Unknown device type: {name}") from None
        return result


class KeyState(IntEnum):
    """Key and button state"""
    PRESSED = 0
    RELEASED = 1


class Axis(IntEnum):
    """Scroll axis"""
    VERTICAL = 0
    HORIZONTAL = 1


class ResponseType(IntEnum):
    """Response code carried by org.freedesktop.portal.Request::Response"""
    SUCCESS = 0
    CANCELLED = 1
    OTHER = 2

    @classmethod
    def wire_decode(cls, value: Any) -> "ResponseType":
        """Decode a response code; unknown codes are a protocol error."""
        try:
            return cls(value)
        except (ValueError, TypeError):
            raise ProtocolError(f"unknown response code {value!r}") from None


class SessionState(Enum):
    """Lifecycle of a remote desktop session, in forward order"""
    CREATED = 0
    DEVICES_SELECTED = 1
    ACTIVE = 2
    CLOSED = 3


@dataclass(frozen=True)
class Variant:
    """A D-Bus variant value: signature plus the Python value it wraps"""
    signature: str
    value: Any


Vardict = dict[str, Variant]


# =========================================================================
# Input events
# =========================================================================


class _NotifyEvent:
    """Base for input events; events carry no options unless they override this."""

    def options_get(self) -> Vardict:
        return {}


@dataclass(frozen=True)
class KeyboardKeycode(_NotifyEvent):
    """Keyboard event addressed by evdev keycode"""
    MEMBER: ClassVar[str] = "NotifyKeyboardKeycode"
    SIGNATURE: ClassVar[str] = "iu"
    DEVICE: ClassVar[DeviceType] = DeviceType.KEYBOARD

    keycode: int
    state: KeyState

    def arguments_get(self) -> tuple:
        return (self.keycode, int(self.state))


@dataclass(frozen=True)
class KeyboardKeysym(_NotifyEvent):
    """Keyboard event addressed by X11 keysym"""
    MEMBER: ClassVar[str] = "NotifyKeyboardKeysym"
    SIGNATURE: ClassVar[str] = "iu"
    DEVICE: ClassVar[DeviceType] = DeviceType.KEYBOARD

    keysym: int
    state: KeyState

    def arguments_get(self) -> tuple:
        return (self.keysym, int(self.state))


@dataclass(frozen=True)
class TouchUp(_NotifyEvent):
    """Touch point released"""
    MEMBER: ClassVar[str] = "NotifyTouchUp"
    SIGNATURE: ClassVar[str] = "u"
    DEVICE: ClassVar[DeviceType] = DeviceType.TOUCHSCREEN

    slot: int

    def arguments_get(self) -> tuple:
        return (self.slot,)


@dataclass(frozen=True)
class TouchDown(_NotifyEvent):
    """Touch point appeared at (x, y) in the stream's logical coordinates"""
    MEMBER: ClassVar[str] = "NotifyTouchDown"
    SIGNATURE: ClassVar[str] = "uudd"
    DEVICE: ClassVar[DeviceType] = DeviceType.TOUCHSCREEN

    stream: int
    slot: int
    x: float
    y: float

    def arguments_get(self) -> tuple:
        return (self.stream, self.slot, float(self.x), float(self.y))


@dataclass(frozen=True)
class TouchMotion(_NotifyEvent):
    """Touch point moved to (x, y) in the stream's logical coordinates"""
    MEMBER: ClassVar[str] = "NotifyTouchMotion"
    SIGNATURE: ClassVar[str] = "uudd"
    DEVICE: ClassVar[DeviceType] = DeviceType.TOUCHSCREEN

    stream: int
    slot: int
    x: float
    y: float

    def arguments_get(self) -> tuple:
        return (self.stream, self.slot, float(self.x), float(self.y))


@dataclass(frozen=True)
class PointerMotionAbsolute(_NotifyEvent):
    """Pointer moved to (x, y) in the stream's logical coordinates"""
    MEMBER: ClassVar[str] = "NotifyPointerMotionAbsolute"
    SIGNATURE: ClassVar[str] = "udd"
    DEVICE: ClassVar[DeviceType] = DeviceType.POINTER

    stream: int
    x: float
    y: float

    def arguments_get(self) -> tuple:
        return (self.stream, float(self.x), float(self.y))


@dataclass(frozen=True)
class PointerMotion(_NotifyEvent):
    """Relative pointer motion"""
    MEMBER: ClassVar[str] = "NotifyPointerMotion"
    SIGNATURE: ClassVar[str] = "dd"
    DEVICE: ClassVar[DeviceType] = DeviceType.POINTER

    dx: float
    dy: float

    def arguments_get(self) -> tuple:
        return (float(self.dx), float(self.dy))


@dataclass(frozen=True)
class PointerButton(_NotifyEvent):
    """Pointer button (evdev BTN_* code) pressed or released"""
    MEMBER: ClassVar[str] = "NotifyPointerButton"
    SIGNATURE: ClassVar[str] = "iu"
    DEVICE: ClassVar[DeviceType] = DeviceType.POINTER

    button: int
    state: KeyState

    def arguments_get(self) -> tuple:
        return (self.button, int(self.state))


@dataclass(frozen=True)
class PointerAxisDiscrete(_NotifyEvent):
    """Discrete scroll steps along one axis"""
    MEMBER: ClassVar[str] = "NotifyPointerAxisDiscrete"
    SIGNATURE: ClassVar[str] = "ui"
    DEVICE: ClassVar[DeviceType] = DeviceType.POINTER

    axis: Axis
    steps: int

    def arguments_get(self) -> tuple:
        return (int(self.axis), self.steps)


@dataclass(frozen=True)
class PointerAxis(_NotifyEvent):
    """
    Smooth scroll delta, as produced by a touchpad.

    `finish` marks the end of a scroll sequence and is sent as an option.
    """
    MEMBER: ClassVar[str] = "NotifyPointerAxis"
    SIGNATURE: ClassVar[str] = "dd"
    DEVICE: ClassVar[DeviceType] = DeviceType.POINTER

    dx: float
    dy: float
    finish: bool = field(default=False)

    def arguments_get(self) -> tuple:
        return (float(self.dx), float(self.dy))

    def options_get(self) -> Vardict:
        if not self.finish:
            return {}
        return {"finish": Variant("b", True)}


InputEvent = Union[
    KeyboardKeycode,
    KeyboardKeysym,
    TouchUp,
    TouchDown,
    TouchMotion,
    PointerMotionAbsolute,
    PointerMotion,
    PointerButton,
    PointerAxisDiscrete,
    PointerAxis,
]
