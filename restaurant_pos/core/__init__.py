"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from restaurant_pos.core.config import get_settings, Settings, EnvironmentMode, KVBackend
from restaurant_pos.core.exceptions import POSError

__all__ = ["get_settings", "Settings", "EnvironmentMode", "KVBackend", "POSError"]
