"""
tzsp-tap system health reporting.
CPU, memory and disk figures for heartbeat messages.
"""

import logging
import os
import shutil

import psutil

logger = logging.getLogger(__name__)


def get_system_health(disk_path: str = "/") -> dict:
    """
    Get host health metrics for the tap heartbeat.

    Returns:
        Dict with: cpu_load, cpu_percent, memory_used, memory_total,
                   memory_percent, disk_free
    """
    result = {
        "cpu_load": 0.0,
        "cpu_percent": 0.0,
        "memory_used": 0,
        "memory_total": 0,
        "memory_percent": 0.0,
        "disk_free": None,
    }

    # 1-minute load average, normalised to a percentage of all CPUs
    try:
        load = os.getloadavg()[0]
        ncpu = os.cpu_count() or 1
        result["cpu_load"] = load
        result["cpu_percent"] = round(min(load / ncpu * 100.0, 100.0), 1)
    except (OSError, AttributeError):
        pct = psutil.cpu_percent(interval=0.1)
        result["cpu_load"] = pct / 100.0
        result["cpu_percent"] = pct

    mem = psutil.virtual_memory()
    result["memory_used"] = mem.used
    result["memory_total"] = mem.total
    if mem.total > 0:
        result["memory_percent"] = round(mem.used / mem.total * 100.0, 1)

    try:
        result["disk_free"] = shutil.disk_usage(disk_path).free
    except OSError as e:
        logger.debug(f"disk_usage({disk_path}) failed: {e}")

    return result
