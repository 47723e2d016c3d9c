"""
pytest configuration and fixtures for the tzsp-tap tests.

Provides:
- Hypothesis profiles (default / ci / dev)
- Sample TZSP datagrams built with the helpers in frames.py
- Isolation of the tap UUID persistence files
"""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from frames import beacon, datagram, sample_tags  # noqa: E402

from hypothesis import settings  # noqa: E402

settings.register_profile("default", max_examples=200, deadline=None)
settings.register_profile("ci", max_examples=1000, deadline=None)
settings.register_profile("dev", max_examples=20, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def beacon_frame():
    """802.11 beacon advertising SSID "hello"."""
    return beacon(ssid=b"hello")


@pytest.fixture
def beacon_datagram(beacon_frame):
    """Full TZSP datagram: every known tag, end tag, beacon."""
    return datagram(sample_tags(), beacon_frame)


@pytest.fixture(autouse=True)
def isolated_uuid_paths(tmp_path, monkeypatch):
    """Keep TapConfig from touching /var/lib or the home directory."""
    from tzsp_tap.system.config import TapConfig
    monkeypatch.setattr(TapConfig, "_UUID_PATHS", [tmp_path / "uuid" / "tap_uuid"])
