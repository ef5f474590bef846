"""Centralized configuration for pia-wg-connect.

This package consolidates the connection defaults and the environment
driven :class:`Settings` so that call sites never read ``os.environ``
directly.
"""

from .defaults import (
    DEFAULT_ALLOWED_IPS,
    DEFAULT_API_PORT,
    DEFAULT_API_TIMEOUT,
    DEFAULT_CA_CERT,
    DEFAULT_CONF_DIR,
    DEFAULT_INTERFACE,
    DEFAULT_KEEPALIVE_SECONDS,
    DEFAULT_PF_COUNTDOWN,
    DEFAULT_PF_SCRIPT,
    REQUIRED_TOOLS,
)
from .settings import Settings, SettingsError, usage_text

__all__ = [
    "DEFAULT_ALLOWED_IPS",
    "DEFAULT_API_PORT",
    "DEFAULT_API_TIMEOUT",
    "DEFAULT_CA_CERT",
    "DEFAULT_CONF_DIR",
    "DEFAULT_INTERFACE",
    "DEFAULT_KEEPALIVE_SECONDS",
    "DEFAULT_PF_COUNTDOWN",
    "DEFAULT_PF_SCRIPT",
    "REQUIRED_TOOLS",
    "Settings",
    "SettingsError",
    "usage_text",
]
