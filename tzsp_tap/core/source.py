"""
tzsp-tap ingestion: where TZSP datagrams come from.

Two sources hand raw TZSP payloads to the decoder:
- UdpSource: listens on the TZSP port (37008) for datagrams sent by an AP
  or sensor ("sniffer stream" / TZSP mirror).
- PcapFileSource: replays a capture file through scapy, keeping only UDP
  packets addressed to the TZSP port.

TZSPReader ties a source to decode_frame() and keeps counters.  Malformed
datagrams are logged at DEBUG and skipped when iterating; next() raises them.
"""

import logging
import socket
import threading
import time
from pathlib import Path
from typing import Dict, Iterator, Optional

from tzsp_tap.core.decoder import decode_frame
from tzsp_tap.core.errors import DecodeError, SourceError
from tzsp_tap.core.frame import DecodedFrame
from tzsp_tap.core.tzsp import TZSP_PORT

logger = logging.getLogger(__name__)

# Largest datagram a sensor sends (802.11 MTU + TZSP tags)
DEFAULT_RECV_SIZE = 1600


class UdpSource:
    """Bound UDP socket yielding one TZSP payload per read()."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = TZSP_PORT,
        recv_size: int = DEFAULT_RECV_SIZE,
        timeout_s: float = 1.0,
    ):
        self.host = host
        self.port = port
        self.recv_size = recv_size
        self.timeout_s = timeout_s
        self.exhausted = False
        self.last_peer = None

        self._sock: Optional[socket.socket] = None
        self._stats = {
            "datagrams": 0,
            "bytes": 0,
            "timeouts": 0,
            "last_datagram_time": 0.0,
        }

    @property
    def name(self) -> str:
        return f"udp:{self.host}:{self.port}"

    def start(self):
        """Bind the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.settimeout(self.timeout_s)
        except OSError:
            sock.close()
            logger.error(f"Cannot bind UDP {self.host}:{self.port}")
            raise
        self._sock = sock
        # port 0 means "any free port"; report the real one
        self.port = sock.getsockname()[1]
        logger.info(f"Listening for TZSP on udp://{self.host}:{self.port}")

    def read(self) -> Optional[bytes]:
        """Return the next datagram payload, or None on timeout."""
        if self._sock is None:
            raise SourceError("UDP source not started")
        try:
            data, peer = self._sock.recvfrom(self.recv_size)
        except socket.timeout:
            self._stats["timeouts"] += 1
            return None
        except OSError as e:
            # a socket that failed once is not reused; is_running goes False
            self.stop()
            raise SourceError(f"UDP receive failed: {e}") from e

        self.last_peer = peer
        self._stats["datagrams"] += 1
        self._stats["bytes"] += len(data)
        self._stats["last_datagram_time"] = time.time()
        return data

    def stop(self):
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as e:
                logger.debug(f"Error closing UDP socket: {e}")
            self._sock = None
            logger.info("UDP source stopped")

    @property
    def is_running(self) -> bool:
        return self._sock is not None

    @property
    def seconds_since_last_datagram(self) -> float:
        if self._stats["last_datagram_time"] == 0:
            return float("inf")
        return time.time() - self._stats["last_datagram_time"]

    @property
    def stats(self) -> dict:
        return dict(self._stats)


class PcapFileSource:
    """Capture-file replay filtered to UDP destination port `port`."""

    def __init__(self, path: str, port: int = TZSP_PORT):
        self.path = Path(path)
        self.port = port
        self.exhausted = False

        self._reader = None
        self._packets = None
        self._stats = {
            "packets": 0,
            "matched": 0,
            "skipped": 0,
        }

    @property
    def name(self) -> str:
        return f"pcap:{self.path}"

    def start(self):
        """Open the capture file (pcap or pcapng)."""
        from scapy.error import Scapy_Exception
        from scapy.utils import PcapReader

        if not self.path.exists():
            raise FileNotFoundError(f"PCAP file not found: {self.path}")
        try:
            self._reader = PcapReader(str(self.path))
        except Scapy_Exception as e:
            raise SourceError(f"Cannot read capture file {self.path}: {e}") from e
        self._packets = iter(self._reader)
        logger.info(f"Reading TZSP from {self.path} (udp dst port {self.port})")

    def read(self) -> Optional[bytes]:
        """
        Return the next TZSP payload, or None once the file is exhausted.

        Raises:
            SourceError: a matching UDP packet carries no payload
        """
        from scapy.layers.inet import UDP

        if self._packets is None:
            raise SourceError("capture file not opened")

        for pkt in self._packets:
            self._stats["packets"] += 1
            if not pkt.haslayer(UDP) or pkt[UDP].dport != self.port:
                self._stats["skipped"] += 1
                continue

            payload = bytes(pkt[UDP].payload)
            if not payload:
                raise SourceError("decode failure (application layer)")
            self._stats["matched"] += 1
            return payload

        self.exhausted = True
        return None

    def stop(self):
        if self._reader is not None:
            try:
                self._reader.close()
            except Exception as e:
                logger.debug(f"Error closing capture file: {e}")
            self._reader = None
            self._packets = None
            logger.info(f"Capture file closed. Stats: {self._stats}")

    @property
    def is_running(self) -> bool:
        return self._reader is not None and not self.exhausted

    @property
    def stats(self) -> dict:
        return dict(self._stats)


class TZSPReader:
    """Decode every payload a source yields."""

    def __init__(self, source, shutdown_event: Optional[threading.Event] = None):
        self.source = source
        self._shutdown = shutdown_event or threading.Event()
        self._stats: Dict[str, int] = {
            "received": 0,
            "decoded": 0,
            "malformed": 0,
        }

    def next(self) -> Optional[DecodedFrame]:
        """
        Read and decode one payload.

        Returns None when the source had nothing (timeout / end of file).

        Raises:
            DecodeError: the payload is not a decodable TZSP 802.11 frame
            SourceError: the source failed before producing a payload
        """
        payload = self.source.read()
        if payload is None:
            return None

        self._stats["received"] += 1
        try:
            frame = decode_frame(payload)
        except DecodeError as e:
            self._stats["malformed"] += 1
            self._stats[e.kind] = self._stats.get(e.kind, 0) + 1
            raise
        self._stats["decoded"] += 1
        return frame

    def __iter__(self) -> Iterator[DecodedFrame]:
        while not self._shutdown.is_set() and self.source.is_running:
            try:
                frame = self.next()
            except DecodeError as e:
                logger.debug(f"Dropping malformed TZSP frame ({e.kind}): {e}")
                continue
            except SourceError as e:
                if not self.source.is_running:
                    logger.error(f"Source {self.source.name} stopped: {e}")
                    return
                logger.warning(f"Source error on {self.source.name}: {e}")
                continue
            if frame is not None:
                yield frame

    def stop(self):
        self._shutdown.set()

    @property
    def stats(self) -> dict:
        return dict(self._stats)
