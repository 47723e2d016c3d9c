"""
TZSP (TaZmen Sniffer Protocol) envelope decoder.

Wire layout:

    0       1       2       3
    +-------+-------+-------+-------+
    |version| type  | encapsulation |   version=1, type=0 (received),
    +-------+-------+-------+-------+   encapsulation=0x1200 (802.11, BE)
    | tag id| length| value ...         repeated until the end tag (1)

Only the tags listed in TAG_NAMES are accepted; anything else rejects the
datagram.  The end tag is not skipped over: the returned offset is the
position of the end tag's id byte plus one.  With real sensors the "length"
byte of the end tag is therefore the first byte of the 802.11 frame, which is
why a frame-control byte of zero is rejected as a zero-length tag.
"""

from tzsp_tap.core.cursor import ByteCursor
from tzsp_tap.core.errors import MalformedEnvelope, UnknownTag, ZeroLengthTag
from tzsp_tap.core.frame import FrameBuilder

TZSP_PORT = 37008

TZSP_VERSION = 1
TZSP_TYPE_RECEIVED = 0
TZSP_ENCAP_80211 = 18 << 8      # 0x1200
TZSP_HEADER_LEN = 4

# Tag ids
TAG_END = 1
TAG_SIGNAL = 10
TAG_RATE = 12
TAG_FCS = 17
TAG_CHANNEL = 18
TAG_ORIG_LEN = 41
TAG_SENSOR_MAC = 60

TAG_NAMES = {
    TAG_END: "end",
    TAG_SIGNAL: "signal",
    TAG_RATE: "rate",
    TAG_FCS: "FCS",
    TAG_CHANNEL: "channel",
    TAG_ORIG_LEN: "origLen",
    TAG_SENSOR_MAC: "sensor",
}

# Value bytes each tag interpretation reads (independent of the length byte)
_VALUE_WIDTH = {
    TAG_SIGNAL: 1,
    TAG_RATE: 1,
    TAG_FCS: 1,
    TAG_CHANNEL: 1,
    TAG_ORIG_LEN: 2,
    TAG_SENSOR_MAC: 6,
}


def _check_preamble(cur: ByteCursor):
    cur.require(TZSP_HEADER_LEN)
    version = cur.u8()
    frame_type = cur.u8()
    encap = cur.u16be()
    if version != TZSP_VERSION or frame_type != TZSP_TYPE_RECEIVED or encap != TZSP_ENCAP_80211:
        raise MalformedEnvelope(
            f"malformed TZSP frame (version={version}, type={frame_type}, "
            f"encapsulation=0x{encap:04x})"
        )


def _read_tag(cur: ByteCursor, tag_id: int, frame: FrameBuilder):
    """Interpret the value of a known, non-terminal tag at the cursor."""
    start = cur.pos
    cur.require(_VALUE_WIDTH[tag_id])

    if tag_id == TAG_SIGNAL:
        frame.set("signal", cur.i8())
    elif tag_id == TAG_RATE:
        frame.set("rate", cur.u8())
    elif tag_id == TAG_FCS:
        frame.set("FCS", cur.u8() == 0)
    elif tag_id == TAG_CHANNEL:
        frame.set("channel", cur.u8())
    elif tag_id == TAG_ORIG_LEN:
        frame.set("origLen", cur.u16be())
    elif tag_id == TAG_SENSOR_MAC:
        frame.set("sensor", cur.take(6))

    cur.seek(start)


def decode_envelope(buf, frame: FrameBuilder) -> int:
    """
    Validate the TZSP envelope and copy known tags into `frame`.

    Returns:
        Offset in `buf` at which the enclosed 802.11 frame starts.

    Raises:
        MalformedEnvelope, ZeroLengthTag, UnknownTag, TruncatedInput
    """
    cur = ByteCursor(buf)
    _check_preamble(cur)

    while True:
        tag_pos = cur.pos
        cur.require(2)
        tag_id = cur.u8()
        length = cur.u8()

        if length == 0:
            raise ZeroLengthTag(tag_id, tag_pos)

        if tag_id == TAG_END:
            return tag_pos + 1

        if tag_id not in _VALUE_WIDTH:
            raise UnknownTag(tag_id, tag_pos)

        # whole declared value must be present before we move past it
        cur.require(length)
        _read_tag(cur, tag_id, frame)
        cur.skip(length)
