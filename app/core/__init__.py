"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from app.core.config import get_settings, Settings, EnvironmentMode
from app.core.errors import RestaurantError

__all__ = ["get_settings", "Settings", "EnvironmentMode", "RestaurantError"]
