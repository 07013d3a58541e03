"""Unit tests for the GDBus transport that need no running bus"""

import pytest

pytest.importorskip("gi")

from gi.repository import GLib  # noqa: E402

from rdportal.common.errors import TransportError  # noqa: E402
from rdportal.common.types import Variant  # noqa: E402
from rdportal.dbus.gio_transport import GioTransport, _value_pack  # noqa: E402


class TestGioTransport:
    """Test construction and unconnected behaviour"""

    def test_unsupported_bus_raises(self):
        with pytest.raises(ValueError, match="Unsupported bus"):
            GioTransport(bus="starter")

    def test_calls_before_connect_raise(self, run):
        transport = GioTransport()
        with pytest.raises(TransportError, match="not established"):
            run(transport.method_call("/", "org.example", "Ping", "", ()))
        with pytest.raises(TransportError):
            transport.uniqueName_get()

    def test_unsubscribe_without_connection(self):
        GioTransport().signal_unsubscribe(1)

    def test_close_without_connect(self, run):
        run(GioTransport().connection_close())


class TestValuePack:
    """Test Variant wrappers become GLib variants"""

    def test_vardict(self):
        packed = _value_pack(
            ("/session/s1", {"handle_token": Variant("s", "t1"), "types": Variant("u", 3)})
        )
        parameters = GLib.Variant("(oa{sv})", packed)

        assert parameters.get_type_string() == "(oa{sv})"
        assert parameters.unpack() == ("/session/s1", {"handle_token": "t1", "types": 3})

    def test_plain_values_unchanged(self):
        assert _value_pack((1, 2.5, "x", [1, 2])) == (1, 2.5, "x", [1, 2])

    def test_boolean_option(self):
        packed = _value_pack({"finish": Variant("b", True)})
        assert packed["finish"].get_type_string() == "b"
        assert packed["finish"].unpack() is True
