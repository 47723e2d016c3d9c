"""
Shared protocol definitions for tzsp-tap <-> collector communication.
Message types, field names, and serialization helpers.
"""

from datetime import datetime, timezone
from typing import Optional

from tzsp_tap import __version__ as TAP_VERSION
from tzsp_tap.core.frame import DecodedFrame
from tzsp_tap.core.printer import hex_octets

# Protocol version for compatibility checking
PROTOCOL_VERSION = 1

# ZMQ topics
TOPIC_FRAME = b"frame"
TOPIC_HEARTBEAT = b"heartbeat"

# Message types
MSG_TZSP_FRAME = "tzsp_frame"
MSG_TAP_HEARTBEAT = "tap_heartbeat"

# 802.11 frame type names, indexed by the 2-bit type field
FRAME_TYPE_NAMES = ("mgmt", "ctrl", "data", "rsrv")


def utcnow_iso() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def make_tzsp_frame(
    tap_uuid: str,
    frame: DecodedFrame,
    source: str,
    peer: Optional[str] = None,
) -> dict:
    """Build a tzsp_frame message.

    `fields` carries every decoded field (octets stay bytes; msgpack packs
    them as bin).  A few commonly routed values are copied to the top level.
    """
    bss = frame.value("BSS")
    ftype = frame.value("type")
    return {
        "type": MSG_TZSP_FRAME,
        "protocol_version": PROTOCOL_VERSION,
        "tap_uuid": tap_uuid,
        "timestamp": utcnow_iso(),
        "source": source,
        "peer": peer,
        "frame_type": FRAME_TYPE_NAMES[ftype] if ftype is not None else None,
        "bssid": hex_octets(bss).lower() if bss is not None else None,
        "ssid": frame.value("SSID"),
        "signal": frame.value("signal"),
        "channel": frame.value("channel"),
        "fields": frame.to_dict(),
    }


def make_heartbeat(
    tap_uuid: str,
    tap_name: str,
    source: str,
    cpu_load: float = 0.0,
    cpu_percent: float = 0.0,
    memory_used: int = 0,
    memory_percent: float = 0.0,
    disk_free: int = None,
    frames_received: int = 0,
    frames_decoded: int = 0,
    frames_malformed: int = 0,
    source_running: bool = True,
    tap_uptime: float = 0.0,
) -> dict:
    """Build a tap heartbeat message."""
    return {
        "type": MSG_TAP_HEARTBEAT,
        "protocol_version": PROTOCOL_VERSION,
        "tap_uuid": tap_uuid,
        "tap_name": tap_name,
        "timestamp": utcnow_iso(),
        "version": TAP_VERSION,
        "source": source,
        "cpu_load": cpu_load,
        "cpu_percent": cpu_percent,
        "memory_used": memory_used,
        "memory_percent": memory_percent,
        "disk_free": disk_free,
        "frames_received": frames_received,
        "frames_decoded": frames_decoded,
        "frames_malformed": frames_malformed,
        "source_running": source_running,
        "tap_uptime": round(tap_uptime, 1),
    }
