"""
Human-readable rendering of DecodedFrame records.

Fields are printed sorted by name; octet fields as colon-separated uppercase
hex pairs (MAC style), everything else via str().
"""

import json
from typing import Any, Dict

from tzsp_tap.core.frame import DecodedFrame, FieldValue, Octets

try:
    import orjson

    def _dumps(obj) -> str:
        return orjson.dumps(obj).decode()
except ImportError:
    def _dumps(obj) -> str:
        return json.dumps(obj)


def hex_octets(data: bytes) -> str:
    return ":".join(f"{b:02X}" for b in data)


def format_value(value: FieldValue) -> str:
    if isinstance(value, Octets):
        return hex_octets(value.value)
    return str(value.value)


def format_frame(frame: DecodedFrame) -> str:
    """One `%12s value` line per field, plus a trailing blank line."""
    lines = [f"{key:>12} {format_value(frame[key])}" for key in frame]
    lines.append("")
    return "\n".join(lines) + "\n"


def frame_to_plain(frame: DecodedFrame) -> Dict[str, Any]:
    """Like frame.to_dict(), with octets rendered as hex strings."""
    return {
        key: hex_octets(frame[key].value) if isinstance(frame[key], Octets) else frame[key].value
        for key in frame
    }


def frame_to_json(frame: DecodedFrame) -> str:
    return _dumps(frame_to_plain(frame))
