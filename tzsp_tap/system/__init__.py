"""tzsp-tap system utilities: config, health."""
from .config import TapConfig
from .health import get_system_health
