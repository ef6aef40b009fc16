"""Configuration for the Tron events cache."""

from .logging import configure_logging, log_error
from .settings import Settings, get_settings

__all__ = ['Settings', 'get_settings', 'configure_logging', 'log_error']
