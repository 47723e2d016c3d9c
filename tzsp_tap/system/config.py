"""
tzsp-tap configuration.

tap_config.json is merged over DEFAULT_CONFIG and checked once at load time;
bad values are reported and replaced by their defaults so the tap always
starts.  A tap UUID is generated on first run and written back to the config
file and to a fallback location that survives config file replacement.
"""

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from tzsp_tap.core.tzsp import TZSP_PORT

logger = logging.getLogger(__name__)

# TZSP preamble + end tag + 802.11 header; anything smaller can never decode
MIN_RECV_BUFFER = 4 + 1 + 10

DEFAULT_CONFIG = {
    "tap_uuid": None,
    "tap_name": "tzsp-tap",
    "listen_host": "0.0.0.0",
    "listen_port": TZSP_PORT,
    "recv_buffer_size": 1600,
    "recv_timeout_s": 1.0,
    "node_host": "127.0.0.1",
    "node_port": 5590,
    "zmq_enabled": True,
    "zmq_buffer_size": 1000,
    "zmq_hwm": 1000,
    "heartbeat_interval_s": 10,
    "stats_interval_s": 60,
    "log_level": "INFO",
}

_PORT_KEYS = ("listen_port", "node_port")
_POSITIVE_KEYS = ("recv_timeout_s", "heartbeat_interval_s", "stats_interval_s",
                  "zmq_buffer_size", "zmq_hwm")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TapConfig:
    """Validated tap settings; keys are readable as attributes."""

    # UUID fallback files, first readable / first writable wins
    _UUID_PATHS = [
        Path("/var/lib/tzsp-tap/tap_uuid"),
        Path.home() / ".tzsp_tap_uuid",
    ]

    def __init__(self, config_path: str = None):
        self.config_path = Path(config_path) if config_path else None
        self.data: Dict[str, Any] = dict(DEFAULT_CONFIG)

    def load(self, path: str = None) -> 'TapConfig':
        if path:
            self.config_path = Path(path)

        overrides = self._read_file()
        if overrides:
            self.data.update(overrides)

        self._resolve_tap_uuid()
        self._validate()
        return self

    def _read_file(self) -> Optional[dict]:
        if not (self.config_path and self.config_path.exists()):
            logger.info("No config file found, using defaults")
            return None
        try:
            loaded = json.loads(self.config_path.read_text())
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config {self.config_path}: {e}, using defaults")
            return None
        if not isinstance(loaded, dict):
            logger.error(f"Config {self.config_path} is not a JSON object, using defaults")
            return None
        logger.info(f"Config loaded from {self.config_path}")
        return loaded

    def _resolve_tap_uuid(self):
        """Config value, else fallback file, else a new UUID saved to both."""
        if self.data.get("tap_uuid"):
            return
        for candidate in self._UUID_PATHS:
            try:
                uid = candidate.read_text().strip() if candidate.exists() else ""
            except OSError:
                continue
            if uid:
                logger.info(f"Loaded tap UUID from {candidate}")
                self.data["tap_uuid"] = uid
                return

        self.data["tap_uuid"] = str(uuid.uuid4())
        logger.info(f"Generated new tap UUID: {self.data['tap_uuid']}")
        if self.config_path:
            self._write_or_warn(self.config_path, json.dumps(self.data, indent=4))
        for candidate in self._UUID_PATHS:
            if self._write_or_warn(candidate, self.data["tap_uuid"] + "\n", quiet=True):
                break
        else:
            logger.warning("Could not persist tap UUID to any fallback location")

    def _validate(self):
        """Replace out-of-range values with defaults, logging each one."""
        def reset(key, reason):
            logger.warning(f"Invalid {key}={self.data.get(key)!r} ({reason}), "
                           f"using {DEFAULT_CONFIG[key]!r}")
            self.data[key] = DEFAULT_CONFIG[key]

        for key in _PORT_KEYS:
            port = self.data.get(key)
            if not (_is_int(port) and 1 <= port <= 65535):
                reset(key, "port must be 1-65535")

        for key in _POSITIVE_KEYS:
            value = self.data.get(key)
            if not (_is_number(value) and value > 0):
                reset(key, "must be positive")

        size = self.data.get("recv_buffer_size")
        if not (_is_int(size) and size >= MIN_RECV_BUFFER):
            reset("recv_buffer_size", f"minimum {MIN_RECV_BUFFER}")

        level = str(self.data.get("log_level", "INFO")).upper()
        if level not in _LOG_LEVELS:
            logger.warning(f"Unknown log_level {level}, using INFO")
            level = "INFO"
        self.data["log_level"] = level

    @staticmethod
    def _write_or_warn(path: Path, content: str, quiet: bool = False) -> bool:
        """Atomically replace path with content; False if it could not be written."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".tzsp")
        except OSError as e:
            if not quiet:
                logger.warning(f"Could not write {path}: {e}")
            return False
        try:
            with os.fdopen(fd, 'w') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, str(path))
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if not quiet:
                logger.warning(f"Could not write {path}: {e}")
            return False
        logger.debug(f"Wrote {path}")
        return True

    def __getattr__(self, name):
        if name in ('data', 'config_path') or name.startswith('_'):
            return super().__getattribute__(name)
        return self.data.get(name)

    def get(self, key, default=None):
        return self.data.get(key, default)
