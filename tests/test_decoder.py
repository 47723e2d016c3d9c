"""
End-to-end decode tests: TZSP envelope + 802.11 header in one call.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from frames import AP_MAC, SENSOR_MAC, beacon, datagram, sample_tags, tag

from tzsp_tap.core.decoder import decode_frame
from tzsp_tap.core.errors import DecodeError, MalformedEnvelope, TruncatedInput, UnknownTag


class TestDecodeFrame:
    def test_full_beacon(self, beacon_datagram):
        frame = decode_frame(beacon_datagram)
        assert frame.to_dict() == {
            "BSS": AP_MAC,
            "FCS": True,
            "SSID": "hello",
            "WEP": 0,
            "capabilities": 0x0431,
            "channel": 6,
            "duration": 0,
            "fragment": 1,
            "fromDS": 0,
            "interval": 100,
            "moreData": 0,
            "moreFrag": 0,
            "order": 0,
            "origLen": 100,
            "pwrmgt": 0,
            "rate": 2,
            "receiver": b"\xff" * 6,
            "retry": 0,
            "sensor": SENSOR_MAC,
            "sequence": 0x125,
            "signal": -60,
            "subtype": 8,
            "toDS": 0,
            "transmitter": AP_MAC,
            "type": 0,
            "version": 0,
        }

    def test_keys_iterate_sorted(self, beacon_datagram):
        keys = list(decode_frame(beacon_datagram))
        assert keys == sorted(keys)

    def test_accepts_bytearray_and_memoryview(self, beacon_datagram):
        expected = decode_frame(beacon_datagram)
        assert decode_frame(bytearray(beacon_datagram)) == expected
        assert decode_frame(memoryview(beacon_datagram)) == expected

    def test_idempotent(self, beacon_datagram):
        first = decode_frame(beacon_datagram)
        second = decode_frame(beacon_datagram)
        assert first == second
        assert first is not second
        assert set(first) == set(second)

    def test_probe_request_has_no_beacon_fields(self):
        frame = decode_frame(datagram(tag(10, b"\xb0"), beacon(fc0=0x40)))
        assert frame.value("signal") == -80
        assert frame.value("subtype") == 4
        assert not frame.is_beacon
        for key in ("transmitter", "BSS", "SSID", "sequence", "fragment", "interval", "capabilities"):
            assert key not in frame

    def test_frame_starts_after_end_tag_id(self):
        # the 802.11 frame control byte doubles as the end tag's length byte
        buf = datagram(b"", beacon(ssid=b"x"))
        assert decode_frame(buf).value("SSID") == "x"

    def test_envelope_error_skips_header_decode(self):
        with pytest.raises(UnknownTag):
            decode_frame(datagram(tag(99, b"\x01"), beacon()))

    def test_malformed(self):
        with pytest.raises(MalformedEnvelope):
            decode_frame(b"\x02\x00\x12\x00\x01\x80" + beacon()[1:])

    def test_header_truncated(self):
        with pytest.raises(TruncatedInput):
            decode_frame(datagram(sample_tags(), b"\x80\x00\x00\x00"))

    def test_header_error_offset_is_datagram_position(self):
        # 802.11 header begins at 29: 4 preamble + 24 tags + end tag id
        with pytest.raises(TruncatedInput) as exc:
            decode_frame(datagram(sample_tags(), beacon(ssid=None)[:20]))
        assert exc.value.offset == 29
        assert exc.value.needed == 36
        assert exc.value.available == 20

    def test_receiver_error_offset_is_datagram_position(self):
        with pytest.raises(TruncatedInput) as exc:
            decode_frame(datagram(sample_tags(), b"\x80\x00\x00\x00\xff\xff"))
        assert exc.value.offset == 33
        assert exc.value.needed == 6
        assert exc.value.available == 2

    def test_empty_buffer(self):
        with pytest.raises(TruncatedInput):
            decode_frame(b"")


class TestDecodeProperties:
    """Never an IndexError / struct.error, only DecodeError or a frame."""

    @given(st.data())
    def test_any_prefix_of_valid_datagram(self, data):
        full = datagram(sample_tags(), beacon(ssid=b"prefix-test"))
        cut = data.draw(st.integers(min_value=0, max_value=len(full)))
        try:
            frame = decode_frame(full[:cut])
        except TruncatedInput:
            return
        # only complete beacons (with or without the SSID element) decode
        assert frame.value("BSS") == AP_MAC

    @given(st.binary(max_size=128))
    def test_random_payload(self, buf):
        try:
            decode_frame(buf)
        except DecodeError:
            pass

    @given(st.binary(max_size=96))
    def test_random_after_valid_envelope(self, tail):
        buf = datagram(sample_tags(), tail)
        try:
            frame = decode_frame(buf)
        except DecodeError:
            return
        assert frame.value("channel") == 6

    @given(st.binary(min_size=10, max_size=80))
    def test_decode_twice_same_result(self, tail):
        buf = datagram(tag(18, b"\x01"), b"\x80" + tail)
        try:
            first = decode_frame(buf)
        except DecodeError:
            return
        assert decode_frame(buf).to_dict() == first.to_dict()
