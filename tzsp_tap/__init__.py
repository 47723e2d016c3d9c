"""
tzsp-tap: TZSP wireless capture decoder.
Receives TZSP-encapsulated 802.11 frames from APs/sensors (UDP 37008) or
capture files, decodes the TZSP tags and the 802.11 header (beacons in full),
and prints or forwards the decoded frames via ZeroMQ to a collector.
"""

__version__ = "0.1.0"
