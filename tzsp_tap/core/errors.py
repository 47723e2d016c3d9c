"""
tzsp-tap decode errors.

Every failure of the TZSP/802.11 decoders is a DecodeError subclass so a
caller can drop a malformed datagram with a single except clause.
"""

from typing import Optional


class DecodeError(ValueError):
    """Base class for all frame decode failures."""

    kind = "decode_error"


class MalformedEnvelope(DecodeError):
    """TZSP preamble has the wrong version, type or encapsulation."""

    kind = "malformed_envelope"


class ZeroLengthTag(DecodeError):
    """A TZSP tag declared a length of zero."""

    kind = "zero_length_tag"

    def __init__(self, tag_id: int, offset: int):
        self.tag_id = tag_id
        self.offset = offset
        super().__init__(f"zero length tag {tag_id} at offset {offset}")


class UnknownTag(DecodeError):
    """A TZSP tag id outside the recognized set."""

    kind = "unknown_tag"

    def __init__(self, tag_id: int, offset: Optional[int] = None):
        self.tag_id = tag_id
        self.offset = offset
        super().__init__(f"unknown TZSP tag {tag_id}")


class TruncatedInput(DecodeError):
    """Buffer too short for the header, tag or field being read."""

    kind = "truncated_input"

    def __init__(self, offset: int, needed: int, available: int):
        self.offset = offset
        self.needed = needed
        self.available = available
        super().__init__(
            f"truncated input: need {needed} byte(s) at offset {offset}, "
            f"{available} available"
        )


class SourceError(Exception):
    """Outer transport (UDP socket / capture file) could not yield a payload."""
