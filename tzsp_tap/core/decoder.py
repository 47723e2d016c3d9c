"""
One-call TZSP datagram decoder: envelope first, then the 802.11 header.
"""

from tzsp_tap.core.frame import DecodedFrame, FrameBuilder
from tzsp_tap.core.ieee80211 import decode_ieee80211
from tzsp_tap.core.tzsp import decode_envelope


def decode_frame(buf) -> DecodedFrame:
    """
    Decode one TZSP datagram payload.

    Args:
        buf: bytes-like payload of a single UDP datagram / capture record

    Returns:
        DecodedFrame with every field that applies to this frame

    Raises:
        DecodeError subclass (MalformedEnvelope, ZeroLengthTag, UnknownTag,
        TruncatedInput) when the payload is rejected
    """
    data = bytes(buf)
    builder = FrameBuilder()
    offset = decode_envelope(data, builder)
    decode_ieee80211(data, builder, offset)
    return builder.freeze()
