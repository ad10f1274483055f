"""Core module for configuration and utilities."""

from videokit.core.config import settings, Settings
from videokit.core.logging import setup_logging

__all__ = [
    "settings",
    "Settings",
    "setup_logging",
]
