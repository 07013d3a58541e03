"""Unit tests for common types (DeviceType, ResponseType, input events)"""

import pytest

from rdportal.common.errors import ProtocolError
from rdportal.common.types import (
    Axis,
    DeviceType,
    KeyboardKeycode,
    KeyState,
    PointerAxis,
    PointerAxisDiscrete,
    PointerMotion,
    PointerMotionAbsolute,
    ResponseType,
    TouchDown,
    TouchUp,
    Variant,
)


class TestDeviceType:
    """Test DeviceType bit-flag set"""

    def test_wire_values(self):
        """Test wire encoding matches the portal's bit assignment"""
        assert DeviceType.KEYBOARD.wire_encode() == 1
        assert DeviceType.POINTER.wire_encode() == 2
        assert DeviceType.TOUCHSCREEN.wire_encode() == 4
        assert DeviceType.all().wire_encode() == 7

    def test_wire_decode_valid(self):
        """Test every value inside the mask decodes"""
        for value in range(8):
            assert DeviceType.wire_decode(value).wire_encode() == value

    @pytest.mark.parametrize("value", [8, 9, 0x10, 0xFFFFFFFF, -1])
    def test_wire_decode_outside_mask_raises(self, value):
        """Test bits outside {1, 2, 4} are a protocol error"""
        with pytest.raises(ProtocolError):
            DeviceType.wire_decode(value)

    @pytest.mark.parametrize("value", ["3", 3.0, None, True])
    def test_wire_decode_non_integer_raises(self, value):
        """Test non-integer payloads are a protocol error"""
        with pytest.raises(ProtocolError):
            DeviceType.wire_decode(value)

    def test_subset(self):
        """Test subset check"""
        both = DeviceType.KEYBOARD | DeviceType.POINTER
        assert DeviceType.POINTER.isSubset_check(both)
        assert not DeviceType.TOUCHSCREEN.isSubset_check(both)
        assert DeviceType(0).isSubset_check(both)

    def test_names(self):
        """Test name conversion both ways"""
        assert (DeviceType.KEYBOARD | DeviceType.TOUCHSCREEN).names_get() == [
            "keyboard",
            "touchscreen",
        ]
        assert DeviceType.names_parse(["Pointer", " keyboard "]) == (
            DeviceType.KEYBOARD | DeviceType.POINTER
        )
        assert DeviceType.names_parse([]) == DeviceType(0)

    def test_names_parse_unknown_raises(self):
        """Test unknown device names are rejected"""
        with pytest.raises(ValueError, match="Unknown device type"):
            DeviceType.names_parse(["joystick"])


class TestResponseType:
    """Test ResponseType decoding"""

    def test_known_codes(self):
        assert ResponseType.wire_decode(0) is ResponseType.SUCCESS
        assert ResponseType.wire_decode(1) is ResponseType.CANCELLED
        assert ResponseType.wire_decode(2) is ResponseType.OTHER

    def test_unknown_code_raises(self):
        with pytest.raises(ProtocolError):
            ResponseType.wire_decode(5)


class TestInputEvents:
    """Test input event wire shape"""

    def test_keycode_event(self):
        """Test keycode event arguments and device class"""
        event = KeyboardKeycode(28, KeyState.RELEASED)
        assert event.MEMBER == "NotifyKeyboardKeycode"
        assert event.SIGNATURE == "iu"
        assert event.DEVICE == DeviceType.KEYBOARD
        assert event.arguments_get() == (28, 1)
        assert event.options_get() == {}

    def test_relative_motion_has_own_member(self):
        """Test relative and absolute motion map to distinct methods"""
        assert PointerMotion.MEMBER == "NotifyPointerMotion"
        assert PointerMotionAbsolute.MEMBER == "NotifyPointerMotionAbsolute"
        assert PointerMotion(1, 2).arguments_get() == (1.0, 2.0)
        assert PointerMotionAbsolute(5, 10, 20).arguments_get() == (5, 10.0, 20.0)

    def test_touch_events(self):
        """Test touch events require touchscreen access"""
        assert TouchDown(1, 0, 3.5, 4.5).arguments_get() == (1, 0, 3.5, 4.5)
        assert TouchUp(2).arguments_get() == (2,)
        assert TouchUp.DEVICE == DeviceType.TOUCHSCREEN

    def test_axis_discrete(self):
        """Test axis enum is sent as its integer value"""
        event = PointerAxisDiscrete(Axis.HORIZONTAL, -3)
        assert event.SIGNATURE == "ui"
        assert event.arguments_get() == (1, -3)

    def test_pointer_axis_finish_option(self):
        """Test smooth scroll sends `finish` only when set"""
        assert PointerAxis(0.0, 1.5).options_get() == {}
        assert PointerAxis(0.0, 0.0, finish=True).options_get() == {"finish": Variant("b", True)}

    def test_events_are_immutable(self):
        event = PointerMotion(1.0, 1.0)
        with pytest.raises(AttributeError):
            event.dx = 2.0
