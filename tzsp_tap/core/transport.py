"""
tzsp-tap ZeroMQ transport.

Decoded frames and heartbeats leave the tap as two-part ZMQ messages
[topic, msgpack(payload)] on a PUB socket that connects to the collector
(which binds SUB on tcp://*:<port>).  While the socket is down or the HWM is
hit, packed messages wait in a bounded OfflineBuffer and are flushed on the
next start().
"""

import logging
import threading
import time
from collections import deque
from typing import Deque, Optional, Tuple

try:
    import zmq
    import msgpack
    HAS_ZMQ = True
except ImportError:
    HAS_ZMQ = False

from tzsp_tap.core.protocol import TOPIC_FRAME, TOPIC_HEARTBEAT

logger = logging.getLogger(__name__)

Message = Tuple[bytes, bytes]

# option name -> value, applied to the PUB socket before connect
_PUB_SOCKOPTS = (
    ("LINGER", 5000),
    ("RECONNECT_IVL", 1000),
    ("RECONNECT_IVL_MAX", 30000),
    ("TCP_KEEPALIVE", 1),
    ("TCP_KEEPALIVE_IDLE", 60),
)


class OfflineBuffer:
    """Bounded FIFO of packed (topic, data) messages with a running byte total.

    Not thread-safe; ZmqTransport holds its lock around every call.
    """

    def __init__(self, maxlen: int):
        self._items: Deque[Message] = deque(maxlen=maxlen)
        self.nbytes = 0

    def __len__(self):
        return len(self._items)

    @property
    def maxlen(self) -> int:
        return self._items.maxlen

    def push(self, message: Message) -> Optional[Message]:
        """Append; returns the evicted oldest message when full."""
        evicted = None
        if len(self._items) == self._items.maxlen:
            evicted = self._items[0]
            self.nbytes -= len(evicted[1])
        self._items.append(message)
        self.nbytes += len(message[1])
        return evicted

    def pop(self) -> Message:
        message = self._items.popleft()
        self.nbytes -= len(message[1])
        return message

    def unpop(self, message: Message):
        """Put a message back at the head after a failed send."""
        self._items.appendleft(message)
        self.nbytes += len(message[1])


class ZmqTransport:
    """PUB transport from this tap to one collector endpoint."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 5590,
        tap_uuid: str = "",
        buffer_size: int = 1000,
        sndhwm: int = 1000,
        connect_settle_s: float = 0.5,
    ):
        self.host = host
        self.port = port
        self.tap_uuid = tap_uuid
        self.sndhwm = sndhwm
        self.connect_settle_s = connect_settle_s

        self._context = None
        self._socket = None
        self._connected = False
        self._pending = OfflineBuffer(buffer_size)
        self._lock = threading.Lock()
        self._stats = dict.fromkeys(("sent", "buffered", "replayed", "errors", "bytes_sent"), 0)

    @property
    def endpoint(self) -> str:
        return f"tcp://{self.host}:{self.port}"

    def start(self):
        """Open the PUB socket, connect to the collector and flush the buffer."""
        if not HAS_ZMQ:
            raise ImportError("pyzmq not installed. Install with: pip install pyzmq msgpack")

        self._context = zmq.Context()
        sock = self._context.socket(zmq.PUB)
        sock.setsockopt(zmq.SNDHWM, self.sndhwm)
        for name, value in _PUB_SOCKOPTS:
            sock.setsockopt(getattr(zmq, name), value)
        self._socket = sock

        logger.info(f"Forwarding frames to {self.endpoint} (tap {self.tap_uuid})")
        try:
            sock.connect(self.endpoint)
        except zmq.ZMQError as e:
            logger.error(f"Cannot connect to collector at {self.endpoint}: {e}")
            self.stop()
            raise

        self._connected = True
        # subscriptions arrive asynchronously; early PUB sends are dropped
        if self.connect_settle_s:
            time.sleep(self.connect_settle_s)
        self._flush_pending()

    def send_frame(self, message: dict):
        """Publish a tzsp_frame message on the frame topic."""
        self._publish(TOPIC_FRAME, message)

    def send_heartbeat(self, heartbeat: dict):
        """Publish a tap_heartbeat message on the heartbeat topic."""
        self._publish(TOPIC_HEARTBEAT, heartbeat)

    def _publish(self, topic: bytes, payload: dict):
        data = msgpack.packb(payload, use_bin_type=True)

        with self._lock:
            if self._connected and self._socket is not None:
                try:
                    self._socket.send_multipart([topic, data], zmq.NOBLOCK)
                except zmq.Again:
                    logger.debug(f"Collector HWM reached, holding {topic.decode()} message")
                except zmq.ZMQError as e:
                    self._stats["errors"] += 1
                    logger.warning(f"Publish of {topic.decode()} failed: {e}")
                else:
                    self._stats["sent"] += 1
                    self._stats["bytes_sent"] += len(data)
                    return

            evicted = self._pending.push((topic, data))
            self._stats["buffered"] += 1
            if evicted is not None:
                logger.warning(
                    f"Offline buffer full ({self._pending.maxlen}), "
                    f"dropped oldest {evicted[0].decode()} message"
                )

    def _flush_pending(self):
        with self._lock:
            total = len(self._pending)
            if not total:
                return

            flushed = 0
            while len(self._pending):
                message = self._pending.pop()
                try:
                    self._socket.send_multipart(list(message), zmq.NOBLOCK)
                except zmq.ZMQError as e:
                    self._pending.unpop(message)
                    logger.warning(f"Flush stopped at {flushed}/{total}: {e}")
                    break
                flushed += 1
                self._stats["bytes_sent"] += len(message[1])

            self._stats["replayed"] += flushed
            logger.info(f"Flushed {flushed}/{total} buffered messages to collector")

    @staticmethod
    def _close(what: str, close):
        try:
            close()
        except zmq.ZMQError as e:
            logger.debug(f"Error closing ZMQ {what}: {e}")

    def stop(self):
        """Close socket and context; buffered messages are kept."""
        self._connected = False
        if self._socket is not None:
            self._close("socket", self._socket.close)
            self._socket = None
        if self._context is not None:
            self._close("context", self._context.term)
            self._context = None
        logger.info(f"ZMQ transport stopped. Stats: {self.stats}")

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def buffered_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def buffered_bytes(self) -> int:
        with self._lock:
            return self._pending.nbytes

    @property
    def stats(self) -> dict:
        with self._lock:
            s = dict(self._stats)
            s["buffer_count"] = len(self._pending)
            s["buffer_bytes"] = self._pending.nbytes
        return s
