"""Core Gatekeep utilities.

This module exports core utilities for use throughout the application.
"""

from gatekeep.core.config import Settings, get_settings, parse_duration
from gatekeep.core.logging import (
    bind_correlation_id,
    clear_context,
    configure_logging,
    correlation_scope,
    get_correlation_id,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "parse_duration",
    "configure_logging",
    "get_logger",
    "bind_correlation_id",
    "clear_context",
    "correlation_scope",
    "get_correlation_id",
]
