"""
IEEE 802.11 MAC header decoder (802.11-2012 8.2.3).

Every frame yields the frame control bits, duration and receiver address.
Beacons (version 0, type 0, subtype 8) additionally yield transmitter, BSS,
sequence, fragment, beacon interval, capabilities and, when the first
information element is an SSID, the SSID.  No other frame types are decoded.
"""

from typing import Iterator, Tuple

from tzsp_tap.core.cursor import ByteCursor
from tzsp_tap.core.frame import FrameBuilder

# Frame types
FT_MGMT = 0
FT_CTRL = 1
FT_DATA = 2

# Management subtypes
ST_MGMT_BEACON = 8

# Information element ids
IE_SSID = 0

MIN_HEADER_LEN = 10     # frame control + duration + receiver
BEACON_MIN_LEN = 36     # header + timestamp + interval + capabilities
BEACON_IE_OFFSET = 36

# frame control byte 1, bit 0 upward
FC_FLAGS = ("toDS", "fromDS", "moreFrag", "retry", "pwrmgt", "moreData", "WEP", "order")


def _decode_ssid(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _decode_beacon(cur: ByteCursor, base: int, frame: FrameBuilder):
    cur.require(BEACON_MIN_LEN, base)

    frame.set("transmitter", cur.slice_from(base + 10, 6))
    frame.set("BSS", cur.slice_from(base + 16, 6))

    # (b22 >> 4) | (b23 << 4), not the 12-bit sequence / 4-bit fragment split
    seq_lo = cur.peek_u8(base + 22)
    seq_hi = cur.peek_u8(base + 23)
    frame.set("sequence", (seq_lo >> 4) | (seq_hi << 4))
    frame.set("fragment", cur.peek_u8(base + 34) & 0x0F)

    cur.seek(base + 32)
    frame.set("interval", cur.u16le())
    frame.set("capabilities", cur.u16le())

    # Only the first element is inspected
    if cur.remaining == 0:
        return
    if cur.u8() == IE_SSID:
        length = cur.u8()
        frame.set("SSID", _decode_ssid(cur.take(length)))


def decode_ieee80211(buf, frame: FrameBuilder, offset: int = 0):
    """
    Decode the 802.11 MAC header starting at `offset` in `buf` into `frame`.

    Field positions are relative to `offset`; error offsets are positions
    in `buf`.

    Raises:
        TruncatedInput: fewer bytes than the header (or beacon body) needs
    """
    cur = ByteCursor(buf, pos=offset)
    cur.require(2)

    fc0 = cur.u8()
    fc1 = cur.u8()
    version = fc0 & 0x03
    ftype = (fc0 >> 2) & 0x03
    subtype = fc0 >> 4

    frame.set("version", version)
    frame.set("type", ftype)
    frame.set("subtype", subtype)
    for bit, name in enumerate(FC_FLAGS):
        frame.set(name, (fc1 >> bit) & 1)

    frame.set("duration", cur.u16le())
    frame.set("receiver", cur.take(6))

    if version == 0 and ftype == FT_MGMT and subtype == ST_MGMT_BEACON:
        _decode_beacon(cur, offset, frame)


def iter_information_elements(buf, offset: int = BEACON_IE_OFFSET) -> Iterator[Tuple[int, bytes]]:
    """
    Yield (element_id, body) for each complete information element.

    Opt-in helper for callers that want more than the SSID; decode_frame()
    never calls it.  Stops quietly at the first element that does not fit.
    """
    data = bytes(buf)
    pos = offset
    while pos + 2 <= len(data):
        eid = data[pos]
        length = data[pos + 1]
        end = pos + 2 + length
        if end > len(data):
            return
        yield eid, data[pos + 2:end]
        pos = end
