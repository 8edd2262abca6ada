"""Structured logging module.

This module provides utilities for structured logging using structlog.
"""

from .base import get_logger
from .setup import setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
