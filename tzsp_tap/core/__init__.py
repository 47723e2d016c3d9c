"""tzsp-tap core: receive -> decode -> print / forward."""
from .decoder import decode_frame
from .errors import DecodeError, MalformedEnvelope, SourceError, TruncatedInput, UnknownTag, ZeroLengthTag
from .frame import DecodedFrame
from .printer import format_frame
from .source import PcapFileSource, TZSPReader, UdpSource


def __getattr__(name):
    """Lazy import for ZmqTransport (avoids loading zmq/msgpack at import time)."""
    if name == "ZmqTransport":
        from .transport import ZmqTransport
        return ZmqTransport
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
