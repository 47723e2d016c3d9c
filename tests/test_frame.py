"""
Tests for the DecodedFrame record and its value variants.
"""

import pytest

from tzsp_tap.core.frame import (
    FIELD_TYPES, DecodedFrame, Flag, FrameBuilder, I8, Octets, Text, U8, U16, make_value,
)


class TestVariants:
    @pytest.mark.parametrize("variant,bad", [
        (U8, 256), (U8, -1), (I8, 128), (I8, -129), (U16, 0x10000), (U16, -1),
    ])
    def test_range_checked(self, variant, bad):
        with pytest.raises(ValueError):
            variant(bad)

    def test_variants_compare_by_type(self):
        assert U8(1) == U8(1)
        assert U8(1) != U16(1)


class TestMakeValue:
    def test_wraps_by_key(self):
        assert make_value("signal", -3) == I8(-3)
        assert make_value("FCS", True) == Flag(True)
        assert make_value("SSID", "net") == Text("net")
        assert make_value("sensor", bytearray(6)) == Octets(bytes(6))

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            make_value("timestamp", 0)

    def test_bool_is_not_an_integer_field(self):
        with pytest.raises(TypeError):
            make_value("rate", True)

    def test_wrong_variant(self):
        with pytest.raises(TypeError):
            make_value("rate", U16(2))

    def test_wrong_python_type(self):
        with pytest.raises(TypeError):
            make_value("SSID", b"raw")

    def test_mac_width(self):
        with pytest.raises(ValueError):
            make_value("BSS", b"\x00" * 5)

    def test_every_field_has_a_variant(self):
        assert len(FIELD_TYPES) == 26


class TestDecodedFrame:
    def _frame(self):
        builder = FrameBuilder()
        builder.set("rate", 12)
        builder.set("BSS", b"\x01\x02\x03\x04\x05\x06")
        builder.set("signal", -42)
        return builder.freeze()

    def test_sorted_iteration(self):
        assert list(self._frame()) == ["BSS", "rate", "signal"]

    def test_getitem_returns_variant(self):
        assert self._frame()["signal"] == I8(-42)

    def test_value_and_default(self):
        frame = self._frame()
        assert frame.value("rate") == 12
        assert frame.value("SSID") is None
        assert frame.value("SSID", "") == ""

    def test_absent_key(self):
        with pytest.raises(KeyError):
            self._frame()["SSID"]

    def test_read_only(self):
        frame = self._frame()
        with pytest.raises(TypeError):
            frame["rate"] = U8(1)

    def test_builder_changes_do_not_leak(self):
        builder = FrameBuilder()
        builder.set("rate", 1)
        frame = builder.freeze()
        builder.set("channel", 6)
        assert "channel" not in frame
        assert "channel" in builder

    def test_to_dict(self):
        assert self._frame().to_dict() == {
            "BSS": b"\x01\x02\x03\x04\x05\x06",
            "rate": 12,
            "signal": -42,
        }

    def test_is_beacon(self):
        assert self._frame().is_beacon
        assert not DecodedFrame({"rate": 1}).is_beacon

    def test_repr(self):
        assert repr(DecodedFrame({"rate": 1})) == "DecodedFrame(rate=1)"
