"""
tzsp-tap entry point.
Usage: python -m tzsp_tap [--config tap_config.json] [--file capture.pcap] [--stdout]

Pipeline:
  UDP :37008 / capture file -> decode_frame -> stdout and/or ZMQ to collector
  (heartbeat and stats logged periodically from the main loop)
"""

import argparse
import logging
import signal
import sys
import threading
import time

from tzsp_tap import __version__
from tzsp_tap.core.errors import DecodeError, SourceError
from tzsp_tap.core.printer import format_frame, frame_to_json
from tzsp_tap.core.protocol import make_heartbeat, make_tzsp_frame
from tzsp_tap.core.source import PcapFileSource, TZSPReader, UdpSource
from tzsp_tap.system.config import TapConfig
from tzsp_tap.system.health import get_system_health

logger = logging.getLogger("tzsp_tap")

_shutdown = threading.Event()


def setup_logging(level: str = "INFO"):
    """Configure logging."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def signal_handler(sig, frame):
    """Handle Ctrl+C / SIGTERM gracefully."""
    logger.info("Shutting down...")
    _shutdown.set()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tzsp-tap",
        description="tzsp-tap: decode TZSP-encapsulated 802.11 frames"
    )
    parser.add_argument(
        "--config", "-c",
        default="tap_config.json",
        help="Path to tap_config.json (default: tap_config.json)"
    )
    parser.add_argument(
        "--file", "-f",
        help="Read TZSP datagrams from a pcap/pcapng file instead of UDP"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Override TZSP UDP port (listen port, or pcap filter port)"
    )
    parser.add_argument(
        "--stdout", "-s",
        action="store_true",
        help="Print every decoded frame to stdout"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print decoded frames as JSON lines instead of the field table"
    )
    parser.add_argument(
        "--no-zmq",
        action="store_true",
        help="Disable ZMQ forwarding"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level override"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _start_transport(config):
    try:
        from tzsp_tap.core.transport import ZmqTransport
        transport = ZmqTransport(
            host=config.node_host,
            port=config.node_port,
            tap_uuid=config.tap_uuid,
            buffer_size=config.get("zmq_buffer_size", 1000),
            sndhwm=config.get("zmq_hwm", 1000),
        )
        transport.start()
        logger.info("ZMQ transport started")
        return transport
    except ImportError:
        logger.warning("ZMQ not available, forwarding disabled")
    except Exception as e:
        logger.warning(f"ZMQ failed to start: {e}, forwarding disabled")
    return None


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _shutdown.clear()

    config = TapConfig(args.config).load()
    setup_logging(args.log_level or config.get("log_level", "INFO"))

    start_time = time.time()
    logger.info(f"tzsp-tap v{__version__} starting")
    logger.info(f"Config: {config.config_path}")
    logger.info(f"Tap UUID: {config.tap_uuid}")

    port = args.port or config.listen_port
    if args.file:
        source = PcapFileSource(args.file, port=port)
    else:
        source = UdpSource(
            host=config.listen_host,
            port=port,
            recv_size=config.recv_buffer_size,
            timeout_s=config.recv_timeout_s,
        )

    try:
        source.start()
    except (OSError, SourceError) as e:
        logger.error(f"Cannot open {source.name}: {e}")
        return 1

    to_stdout = args.stdout or args.json
    transport = None
    if config.zmq_enabled and not args.no_zmq:
        transport = _start_transport(config)
    if transport is None and not to_stdout:
        logger.info("No forwarding target, printing frames to stdout")
        to_stdout = True

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    reader = TZSPReader(source, shutdown_event=_shutdown)
    heartbeat_interval = config.heartbeat_interval_s
    stats_interval = config.stats_interval_s
    last_heartbeat = 0.0
    last_stats = time.time()

    logger.info(f"Reading TZSP from {source.name}")

    try:
        while not _shutdown.is_set():
            try:
                frame = reader.next()
            except DecodeError as e:
                logger.debug(f"Dropping malformed TZSP frame ({e.kind}): {e}")
                frame = None
            except SourceError as e:
                if not source.is_running:
                    logger.error(f"Source {source.name} stopped: {e}")
                    break
                logger.warning(f"Source error: {e}")
                frame = None

            now = time.time()

            if transport and (now - last_heartbeat) >= heartbeat_interval:
                try:
                    health = get_system_health()
                except Exception as e:
                    logger.debug(f"Health probe failed: {e}")
                    health = {}
                rs = reader.stats
                transport.send_heartbeat(make_heartbeat(
                    tap_uuid=config.tap_uuid,
                    tap_name=config.tap_name,
                    source=source.name,
                    cpu_load=health.get("cpu_load", 0.0),
                    cpu_percent=health.get("cpu_percent", 0.0),
                    memory_used=health.get("memory_used", 0),
                    memory_percent=health.get("memory_percent", 0.0),
                    disk_free=health.get("disk_free"),
                    frames_received=rs["received"],
                    frames_decoded=rs["decoded"],
                    frames_malformed=rs["malformed"],
                    source_running=source.is_running,
                    tap_uptime=now - start_time,
                ))
                last_heartbeat = now

            if (now - last_stats) >= stats_interval:
                last_stats = now
                rs = reader.stats
                zmq_info = ""
                if transport:
                    ts = transport.stats
                    zmq_info = f", zmq: {ts['sent']} sent/{ts['buffered']} buffered/{ts['errors']} errors"
                logger.info(
                    f"Stats: {rs['received']} received, {rs['decoded']} decoded, "
                    f"{rs['malformed']} malformed{zmq_info}"
                )

            if frame is None:
                if source.exhausted:
                    break
                continue

            if to_stdout:
                if args.json:
                    print(frame_to_json(frame), flush=True)
                else:
                    sys.stdout.write(format_frame(frame))
                    sys.stdout.flush()

            if transport:
                peer = getattr(source, "last_peer", None)
                transport.send_frame(make_tzsp_frame(
                    tap_uuid=config.tap_uuid,
                    frame=frame,
                    source=source.name,
                    peer=f"{peer[0]}:{peer[1]}" if peer else None,
                ))

    except KeyboardInterrupt:
        pass
    finally:
        source.stop()
        if transport:
            transport.stop()
        logger.info(f"tzsp-tap stopped. Reader stats: {reader.stats}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
