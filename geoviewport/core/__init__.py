"""Core configuration, logging and error types."""

from .config import Settings, configure_logging, settings
from .exceptions import InvalidArgumentError

__all__ = [
    "Settings",
    "configure_logging",
    "settings",
    "InvalidArgumentError",
]
